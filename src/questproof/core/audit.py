"""QuestProof audit log writer.

One write-once entry per verification attempt: model used, confidence,
timing and error text. Audit failures are logged and never break an attempt.
"""

from __future__ import annotations

import logging

from questproof.models.enums import AuditStatus
from questproof.models.schemas import AuditEntry
from questproof.storage.repository import VerificationStore

logger = logging.getLogger(__name__)


class AuditLogWriter:
    def __init__(self, store: VerificationStore) -> None:
        self.store = store

    async def record(
        self,
        *,
        submission_id: str,
        model_used: str,
        status: AuditStatus,
        execution_time_ms: float,
        user_id: str | None = None,
        verification_id: str | None = None,
        confidence: float | None = None,
        error_message: str | None = None,
    ) -> AuditEntry | None:
        entry = AuditEntry(
            submission_id=submission_id,
            user_id=user_id,
            verification_id=verification_id,
            model_used=model_used,
            status=status,
            confidence=confidence,
            execution_time_ms=max(0.0, execution_time_ms),
            error_message=error_message,
        )
        try:
            stored = await self.store.add_audit(entry)
        except Exception as exc:
            logger.error("[%s] Audit write failed: %s", submission_id, exc)
            return None
        if status != AuditStatus.SUCCESS:
            logger.warning("[%s] Attempt audited as %s: %s", submission_id, status.value, error_message)
        return stored

    async def for_submission(self, submission_id: str) -> list[AuditEntry]:
        return await self.store.list_audit(submission_id=submission_id)

    async def for_user(self, user_id: str) -> list[AuditEntry]:
        return await self.store.list_audit(user_id=user_id)
