"""QuestProof authenticity heuristic scorer.

Starts at 1.0 and subtracts for each missing or suspicious signal. Deductions
are cumulative and each one appends a flag for the audit trail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from questproof.models.schemas import PhotoMetadata

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400.0


@dataclass(frozen=True)
class AuthenticityResult:
    score: float
    flags: list[str] = field(default_factory=list)


class AuthenticityScorer:
    DEDUCTIONS: dict[str, float] = {
        "no_metadata": 0.3,
        "stale": 0.2,
        "not_recent": 0.1,
        "invalid_timestamp": 0.1,
        "no_camera": 0.1,
    }

    STALE_DAYS = 7.0
    RECENT_DAYS = 1.0

    def score(self, metadata: PhotoMetadata, attempt_at: datetime | None = None) -> AuthenticityResult:
        now = attempt_at or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        score = 1.0
        flags: list[str] = []

        if not metadata.has_metadata:
            flags.append("No EXIF data")
            score -= self.DEDUCTIONS["no_metadata"]

        if metadata.captured_at is not None:
            age_days = abs((now - metadata.captured_at).total_seconds()) / SECONDS_PER_DAY
            if age_days > self.STALE_DAYS:
                flags.append("Old photo (>7 days)")
                score -= self.DEDUCTIONS["stale"]
            elif age_days > self.RECENT_DAYS:
                flags.append("Photo not recent (>1 day)")
                score -= self.DEDUCTIONS["not_recent"]
        elif metadata.timestamp_invalid:
            flags.append("Invalid timestamp")
            score -= self.DEDUCTIONS["invalid_timestamp"]

        if not metadata.camera:
            flags.append("No camera info")
            score -= self.DEDUCTIONS["no_camera"]

        result = AuthenticityResult(score=max(0.0, min(1.0, score)), flags=flags)
        if flags:
            logger.debug("Authenticity %.2f flags=%s", result.score, flags)
        return result
