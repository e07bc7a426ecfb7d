"""QuestProof submission lifecycle controller.

State machine for a submission after an automated (or overridden) verdict:

  pending --verified--> approved
  pending --uncertain-> pending (manual review)
  pending --rejected--> purged (files, likes/comments/shares, then the row)

Purging rather than flagging makes the quest immediately resubmittable. Every
purge step is best-effort: failures are logged and reported, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from questproof.exceptions import OverrideError, VerificationNotFoundError
from questproof.models.enums import LifecycleAction, SubmissionStatus, Verdict
from questproof.models.schemas import VerificationOutcome
from questproof.storage.object_storage import ObjectStorage, collect_storage_keys
from questproof.storage.repository import DEPENDENT_TABLES, VerificationStore

logger = logging.getLogger(__name__)


@dataclass
class LifecycleResult:
    submission_id: str
    action: LifecycleAction
    removed_objects: list[str] = field(default_factory=list)
    deleted_rows: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.errors


class SubmissionLifecycle:
    def __init__(self, store: VerificationStore, storage: ObjectStorage) -> None:
        self.store = store
        self.storage = storage

    async def apply(self, submission_id: str, verdict: Verdict) -> LifecycleResult:
        """Apply the side effect of a verdict to the submission, exactly once."""
        if verdict == Verdict.UNCERTAIN:
            logger.info("[%s] Verdict uncertain, left pending for manual review", submission_id)
            return LifecycleResult(submission_id, LifecycleAction.UNCHANGED)
        if verdict == Verdict.VERIFIED:
            return await self.approve(submission_id)
        return await self.purge(submission_id)

    async def approve(self, submission_id: str) -> LifecycleResult:
        try:
            updated = await self.store.set_submission_status(submission_id, SubmissionStatus.APPROVED)
        except Exception as exc:
            logger.error("[%s] Approval failed: %s", submission_id, exc)
            return LifecycleResult(submission_id, LifecycleAction.UNCHANGED, errors=[f"approve: {exc}"])
        if not updated:
            logger.warning("[%s] Cannot approve, submission no longer exists", submission_id)
            return LifecycleResult(submission_id, LifecycleAction.MISSING)
        logger.info("[%s] Submission approved", submission_id)
        return LifecycleResult(submission_id, LifecycleAction.APPROVED)

    async def purge(self, submission_id: str) -> LifecycleResult:
        """Delete files, dependent social rows and the submission, in that order."""
        result = LifecycleResult(submission_id, LifecycleAction.PURGED)

        try:
            submission = await self.store.get_submission(submission_id)
        except Exception as exc:
            logger.error("[%s] Could not load submission for purge: %s", submission_id, exc)
            submission = None
            result.errors.append(f"load: {exc}")

        if submission is None and not result.errors:
            logger.warning("[%s] Nothing to purge, submission no longer exists", submission_id)
            result.action = LifecycleAction.MISSING
            return result

        # Step 1: storage objects
        if submission is not None:
            keys = collect_storage_keys([submission.photo_url, *(submission.image_urls or [])], self.storage.bucket)
            if keys:
                try:
                    result.removed_objects = await self.storage.remove(keys)
                except Exception as exc:
                    logger.error("[%s] Storage cleanup failed for %d keys: %s", submission_id, len(keys), exc)
                    result.errors.append(f"storage: {exc}")

        # Step 2: dependent social rows
        for kind in DEPENDENT_TABLES:
            try:
                result.deleted_rows[kind] = await self.store.delete_dependent_rows(kind, submission_id)
            except Exception as exc:
                logger.error("[%s] Deleting %s failed: %s", submission_id, kind, exc)
                result.errors.append(f"{kind}: {exc}")

        # Step 3: the submission row itself, which unblocks resubmission
        try:
            deleted = await self.store.delete_submission(submission_id)
            if not deleted:
                result.action = LifecycleAction.MISSING
        except Exception as exc:
            logger.error("[%s] Deleting submission row failed: %s", submission_id, exc)
            result.errors.append(f"submission: {exc}")

        if result.errors:
            logger.warning("[%s] Purge finished with %d error(s), left for a later cleanup pass", submission_id, len(result.errors))
        else:
            logger.info(
                "[%s] Submission purged (objects=%d rows=%s)",
                submission_id,
                len(result.removed_objects),
                result.deleted_rows,
            )
        return result

    async def override(
        self, verification_id: str, verdict: Verdict, reason: str, admin_id: str
    ) -> tuple[VerificationOutcome, LifecycleResult]:
        """Explicitly authorized admin decision that replaces an automated verdict."""
        if verdict == Verdict.UNCERTAIN:
            raise OverrideError("Override must force verified or rejected")
        if not reason or not reason.strip():
            raise OverrideError("Override requires a justification")
        if not admin_id:
            raise OverrideError("Override requires the acting admin id")

        existing = await self.store.get_verification(verification_id)
        if existing is None:
            raise VerificationNotFoundError(verification_id)

        outcome = await self.store.apply_override(verification_id, verdict, reason.strip(), admin_id)
        logger.warning(
            "[%s] Admin %s overrode verdict %s -> %s: %s",
            outcome.submission_id,
            admin_id,
            existing.verdict.value,
            verdict.value,
            reason.strip(),
        )
        lifecycle = await self.apply(outcome.submission_id, verdict)
        return outcome, lifecycle
