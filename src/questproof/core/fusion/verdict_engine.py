"""QuestProof score aggregator and verdict engine.

Final decision layer: weighted sum of the heuristic and judge signals, mapped
to verified / uncertain / rejected through fixed thresholds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from questproof.core.scoring.authenticity import AuthenticityResult
from questproof.core.scoring.geofence import GeofenceResult
from questproof.models.enums import Verdict
from questproof.models.schemas import VerdictThresholds, VisionJudgment

logger = logging.getLogger(__name__)

JUDGE_DEFAULT = 0.5


@dataclass(frozen=True)
class AggregateScore:
    geofence: float
    authenticity: float
    visual_scene_match: float
    quest_match: float
    scene_relevance: float
    ai_authenticity: float
    final_confidence: float
    verdict: Verdict
    reason: str


class VerdictEngine:
    """Combine component scores into final confidence + verdict.

    Weights (sum = 1.0), hard-to-fake physical signals first:
      - geofence:           0.30
      - authenticity:       0.25
      - visual scene match: 0.20
      - quest match:        0.15
      - scene relevance:    0.10

    Thresholds (inclusive lower bounds):
      - verified:  confidence >= 0.85
      - uncertain: 0.60 <= confidence < 0.85
      - rejected:  confidence < 0.60
    """

    WEIGHTS: dict[str, float] = {
        "geofence": 0.30,
        "authenticity": 0.25,
        "visual_scene_match": 0.20,
        "quest_match": 0.15,
        "scene_relevance": 0.10,
    }

    def __init__(self, thresholds: VerdictThresholds | None = None) -> None:
        self.thresholds = thresholds or VerdictThresholds()

    def aggregate(
        self,
        geofence: GeofenceResult,
        authenticity: AuthenticityResult,
        judgment: VisionJudgment | None = None,
    ) -> AggregateScore:
        visual = judgment.visual_scene_match if judgment else JUDGE_DEFAULT
        quest = judgment.quest_match if judgment else JUDGE_DEFAULT
        relevance = judgment.scene_relevance if judgment else JUDGE_DEFAULT
        ai_auth = judgment.ai_authenticity if judgment else JUDGE_DEFAULT

        confidence = self.combine(
            geofence=geofence.score,
            authenticity=authenticity.score,
            visual_scene_match=visual,
            quest_match=quest,
            scene_relevance=relevance,
        )
        verdict = self.to_verdict(confidence)
        reason = self.compose_reason(geofence, authenticity, judgment)

        logger.debug("Aggregate confidence=%.4f verdict=%s", confidence, verdict.value)
        return AggregateScore(
            geofence=geofence.score,
            authenticity=authenticity.score,
            visual_scene_match=visual,
            quest_match=quest,
            scene_relevance=relevance,
            ai_authenticity=ai_auth,
            final_confidence=confidence,
            verdict=verdict,
            reason=reason,
        )

    def combine(self, **components: float) -> float:
        total = 0.0
        for key, weight in self.WEIGHTS.items():
            value = max(0.0, min(1.0, components.get(key, JUDGE_DEFAULT)))
            total += weight * value
        return max(0.0, min(1.0, round(total, 6)))

    def to_verdict(self, confidence: float) -> Verdict:
        if confidence >= self.thresholds.verified:
            return Verdict.VERIFIED
        if confidence >= self.thresholds.uncertain:
            return Verdict.UNCERTAIN
        return Verdict.REJECTED

    @staticmethod
    def compose_reason(
        geofence: GeofenceResult,
        authenticity: AuthenticityResult,
        judgment: VisionJudgment | None = None,
    ) -> str:
        parts = [
            judgment.rationale if judgment else "",
            geofence.reason,
            "; ".join(authenticity.flags),
        ]
        return " | ".join(p for p in parts if p)

    def confidence_label(self, confidence: float) -> str:
        labels = {
            Verdict.VERIFIED: "High Confidence",
            Verdict.UNCERTAIN: "Medium Confidence",
            Verdict.REJECTED: "Low Confidence",
        }
        return labels[self.to_verdict(confidence)]
