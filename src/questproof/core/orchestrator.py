"""QuestProof verification pipeline (entry point).

1. Submission check    -> attempts for a purged submission are not recorded
2. Fetch               -> photo reference to bytes (failure is non-fatal)
3. Extraction          -> EXIF metadata
4. Heuristics          -> geofence + authenticity scores
5. Vision judge        -> four sub-scores (skipped in heuristic-only mode)
6. Aggregation         -> final confidence + verdict
7. Persist             -> append-only outcome, linked from the submission
8. Lifecycle           -> approve / leave pending / purge
9. Audit               -> one entry per attempt
10. Specialists        -> optional detached enrichment tasks

Any failure in steps 1-6 becomes a single "uncertain, manual review" outcome;
verify() never raises.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from questproof.core.audit import AuditLogWriter
from questproof.core.fusion.verdict_engine import JUDGE_DEFAULT, VerdictEngine
from questproof.core.image_fetcher import ImageFetcher
from questproof.core.judge.base import JudgeContext, VisionJudge
from questproof.core.judge.chain import ChainedVisionJudge, build_vision_judge
from questproof.core.lifecycle import SubmissionLifecycle
from questproof.core.metadata_extractor import MetadataExtractor
from questproof.core.scoring.authenticity import AuthenticityResult, AuthenticityScorer
from questproof.core.scoring.geofence import GeofenceResult, GeofenceScorer
from questproof.exceptions import JudgeTimeoutError, QuestProofError, SubmissionNotFoundError
from questproof.models.enums import AuditStatus, Verdict
from questproof.models.schemas import PhotoMetadata, PipelineConfig, VerificationOutcome, VerificationRequest
from questproof.specialists.runner import SpecialistRunner
from questproof.storage.object_storage import ObjectStorage
from questproof.storage.repository import VerificationStore

logger = logging.getLogger(__name__)

HEURISTIC_MODEL = "heuristic-only"
FALLBACK_MODEL = "fallback"
FALLBACK_CONFIDENCE = 0.5


@dataclass
class _Attempt:
    """Partial results of one attempt, kept for the fallback outcome."""

    started: float = field(default_factory=time.perf_counter)
    metadata: PhotoMetadata | None = None
    geofence: GeofenceResult | None = None
    authenticity: AuthenticityResult | None = None

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000


class VerificationPipeline:
    """Main photo-proof verification pipeline."""

    def __init__(
        self,
        config: PipelineConfig,
        store: VerificationStore,
        storage: ObjectStorage,
        fetcher: ImageFetcher | None = None,
        judge: VisionJudge | ChainedVisionJudge | None = None,
        extractor: MetadataExtractor | None = None,
        specialists: SpecialistRunner | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.fetcher = fetcher or ImageFetcher()
        self.judge = judge if judge is not None else build_vision_judge(config)
        self.extractor = extractor or MetadataExtractor()
        self.geofence = GeofenceScorer(threshold_m=config.geofence_threshold_m)
        self.authenticity = AuthenticityScorer()
        self.engine = VerdictEngine(config.thresholds)
        self.lifecycle = SubmissionLifecycle(store, storage)
        self.audit = AuditLogWriter(store)
        self.specialists = specialists

    @property
    def model_name(self) -> str:
        return self.judge.name if self.judge else HEURISTIC_MODEL

    async def verify(self, request: VerificationRequest) -> VerificationOutcome:
        """Run one verification attempt. Never raises."""
        attempt = _Attempt()
        sid = request.submission_id
        logger.info("[%s] Verification started (model=%s)", sid, self.model_name)

        error: Exception | None = None
        try:
            outcome = await self._evaluate(request, attempt)
        except Exception as exc:
            error = exc
            logger.error("[%s] Verification failed: %s", sid, exc, exc_info=not isinstance(exc, QuestProofError))
            outcome = self._fallback(request, attempt, exc)
        outcome = outcome.model_copy(update={"execution_time_ms": round(attempt.elapsed_ms, 2)})

        if not isinstance(error, SubmissionNotFoundError):
            outcome, persist_error = await self._persist(outcome)
            error = error or persist_error

        await self.audit.record(
            submission_id=sid,
            user_id=request.user_id,
            verification_id=outcome.id,
            model_used=outcome.model_used,
            status=self._audit_status(error),
            confidence=outcome.final_confidence,
            execution_time_ms=outcome.execution_time_ms,
            error_message=str(error) if error else None,
        )

        if (
            self.specialists is not None
            and self.config.run_specialists
            and outcome.id is not None
            and outcome.verdict != Verdict.REJECTED
        ):
            self.specialists.dispatch(outcome.id)

        logger.info(
            "[%s] Verification complete: verdict=%s confidence=%.3f (%.0fms)",
            sid,
            outcome.verdict.value,
            outcome.final_confidence,
            outcome.execution_time_ms,
        )
        return outcome

    async def verify_submission(self, submission_id: str) -> VerificationOutcome:
        """Explicitly triggered re-verification of a stored submission."""
        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        photo_url = submission.photo_url or next(iter(submission.image_urls or []), None)
        if not photo_url:
            raise QuestProofError(f"Submission {submission_id} has no photo")

        quest = await self.store.get_quest(submission.quest_id) if submission.quest_id else None
        request = VerificationRequest(
            submission_id=submission.id,
            photo_url=photo_url,
            quest_title=quest.title if quest else "",
            quest_description=quest.description if quest else "",
            quest_location=quest.location if quest else "",
            quest_latitude=quest.latitude if quest else None,
            quest_longitude=quest.longitude if quest else None,
            user_latitude=submission.latitude,
            user_longitude=submission.longitude,
            user_id=submission.user_id,
            quest_id=submission.quest_id,
        )
        return await self.verify(request)

    # ── Steps 1-6 ──

    async def _evaluate(self, request: VerificationRequest, attempt: _Attempt) -> VerificationOutcome:
        if not await self.store.submission_exists(request.submission_id):
            raise SubmissionNotFoundError(request.submission_id)

        image = await self.fetcher.fetch(request.photo_url)
        attempt.metadata = self.extractor.extract(image) if image else PhotoMetadata()

        attempt.geofence = self.geofence.score(
            request.quest_latitude,
            request.quest_longitude,
            metadata=attempt.metadata,
            user_lat=request.user_latitude,
            user_lon=request.user_longitude,
        )
        attempt.authenticity = self.authenticity.score(attempt.metadata, attempt_at=datetime.now(timezone.utc))
        logger.info(
            "[%s] Heuristics: geofence=%.2f authenticity=%.2f flags=%s",
            request.submission_id,
            attempt.geofence.score,
            attempt.authenticity.score,
            attempt.authenticity.flags,
        )

        judgment = None
        if self.judge is not None:
            context = JudgeContext(
                metadata=attempt.metadata,
                geofence_reason=attempt.geofence.reason,
                authenticity_flags=list(attempt.authenticity.flags),
            )
            judgment = await self.judge.judge(request, image, context)

        score = self.engine.aggregate(attempt.geofence, attempt.authenticity, judgment)
        return VerificationOutcome(
            submission_id=request.submission_id,
            user_id=request.user_id,
            quest_id=request.quest_id,
            photo_url=request.photo_url,
            geofence_score=score.geofence,
            authenticity_score=score.authenticity,
            quest_match=score.quest_match,
            visual_scene_match=score.visual_scene_match,
            ai_authenticity=score.ai_authenticity,
            scene_relevance=score.scene_relevance,
            final_confidence=score.final_confidence,
            verdict=score.verdict,
            reason=score.reason,
            photo_metadata=attempt.metadata,
            distance_m=attempt.geofence.distance_m,
            model_used=judgment.provider if judgment and judgment.provider else self.model_name,
        )

    def _fallback(self, request: VerificationRequest, attempt: _Attempt, exc: Exception) -> VerificationOutcome:
        return VerificationOutcome(
            submission_id=request.submission_id,
            user_id=request.user_id,
            quest_id=request.quest_id,
            photo_url=request.photo_url,
            geofence_score=attempt.geofence.score if attempt.geofence else JUDGE_DEFAULT,
            authenticity_score=attempt.authenticity.score if attempt.authenticity else JUDGE_DEFAULT,
            quest_match=JUDGE_DEFAULT,
            visual_scene_match=JUDGE_DEFAULT,
            ai_authenticity=JUDGE_DEFAULT,
            scene_relevance=JUDGE_DEFAULT,
            final_confidence=FALLBACK_CONFIDENCE,
            verdict=Verdict.UNCERTAIN,
            reason=f"Verification failed: {exc}. Manual review required.",
            photo_metadata=attempt.metadata,
            distance_m=attempt.geofence.distance_m if attempt.geofence else None,
            model_used=FALLBACK_MODEL,
        )

    # ── Steps 7-8 ──

    async def _persist(self, outcome: VerificationOutcome) -> tuple[VerificationOutcome, Exception | None]:
        sid = outcome.submission_id
        try:
            stored = await self.store.add_verification(outcome)
            await self.store.link_verification(sid, stored.id or "")
        except Exception as exc:
            logger.error("[%s] Could not persist outcome: %s", sid, exc, exc_info=True)
            return outcome, exc

        # Lifecycle errors are logged inside the controller and never surface
        result = await self.lifecycle.apply(sid, stored.verdict)
        logger.info("[%s] Lifecycle action: %s", sid, result.action.value)
        return stored, None

    @staticmethod
    def _audit_status(error: Exception | None) -> AuditStatus:
        if error is None:
            return AuditStatus.SUCCESS
        if isinstance(error, JudgeTimeoutError):
            return AuditStatus.TIMEOUT
        return AuditStatus.ERROR
