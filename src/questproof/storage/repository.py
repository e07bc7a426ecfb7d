"""QuestProof verification store.

Thin async repository over the ORM tables. Outcomes and audit entries are only
ever inserted; the enrichment and override columns of an outcome are the only
fields updated after the fact.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import delete, select, update

from questproof.exceptions import VerificationNotFoundError
from questproof.models.enums import SubmissionStatus, Verdict
from questproof.models.schemas import AuditEntry, VerificationOutcome
from questproof.storage.database import Database
from questproof.storage.tables import (
    AuditRow,
    PostCommentRow,
    PostLikeRow,
    PostShareRow,
    QuestRow,
    SubmissionRow,
    VerificationRow,
)

logger = logging.getLogger(__name__)

DEPENDENT_TABLES = {
    "likes": PostLikeRow,
    "comments": PostCommentRow,
    "shares": PostShareRow,
}

ENRICHMENT_FIELDS = frozenset(
    {"deepfake_verdict", "deepfake_label", "deepfake_confidence", "analysis_report", "analyzed_at"}
)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class VerificationStore:
    def __init__(self, database: Database) -> None:
        self.db = database

    # ── Submissions / quests (external entities) ──

    async def get_submission(self, submission_id: str) -> SubmissionRow | None:
        async with self.db.sessionmaker() as session:
            return await session.get(SubmissionRow, submission_id)

    async def submission_exists(self, submission_id: str) -> bool:
        return await self.get_submission(submission_id) is not None

    async def get_quest(self, quest_id: str) -> QuestRow | None:
        async with self.db.sessionmaker() as session:
            return await session.get(QuestRow, quest_id)

    async def pending_submission_ids(self, limit: int = 100) -> list[str]:
        async with self.db.sessionmaker() as session:
            rows = await session.execute(
                select(SubmissionRow.id)
                .where(SubmissionRow.status == SubmissionStatus.PENDING.value)
                .order_by(SubmissionRow.created_at)
                .limit(limit)
            )
            return list(rows.scalars())

    async def set_submission_status(self, submission_id: str, status: SubmissionStatus) -> bool:
        async with self.db.sessionmaker() as session, session.begin():
            result = await session.execute(
                update(SubmissionRow).where(SubmissionRow.id == submission_id).values(status=status.value)
            )
            return result.rowcount > 0

    async def link_verification(self, submission_id: str, verification_id: str) -> None:
        async with self.db.sessionmaker() as session, session.begin():
            await session.execute(
                update(SubmissionRow)
                .where(SubmissionRow.id == submission_id)
                .values(verification_id=verification_id)
            )

    async def delete_dependent_rows(self, kind: str, submission_id: str) -> int:
        model = DEPENDENT_TABLES[kind]
        async with self.db.sessionmaker() as session, session.begin():
            result = await session.execute(delete(model).where(model.submission_id == submission_id))
            return result.rowcount or 0

    async def delete_submission(self, submission_id: str) -> bool:
        async with self.db.sessionmaker() as session, session.begin():
            result = await session.execute(delete(SubmissionRow).where(SubmissionRow.id == submission_id))
            return result.rowcount > 0

    # ── Verification outcomes ──

    async def add_verification(self, outcome: VerificationOutcome) -> VerificationOutcome:
        data = outcome.model_dump(exclude={"id", "created_at"})
        data["verdict"] = outcome.verdict.value
        data["deepfake_verdict"] = outcome.deepfake_verdict.value if outcome.deepfake_verdict else None
        data["photo_metadata"] = outcome.photo_metadata.model_dump(mode="json") if outcome.photo_metadata else None
        row = VerificationRow(id=_new_id("ver"), created_at=datetime.now(timezone.utc), **data)
        async with self.db.sessionmaker() as session, session.begin():
            session.add(row)
        return VerificationOutcome.model_validate(row)

    async def get_verification(self, verification_id: str) -> VerificationOutcome | None:
        async with self.db.sessionmaker() as session:
            row = await session.get(VerificationRow, verification_id)
            return VerificationOutcome.model_validate(row) if row else None

    async def list_verifications(
        self, submission_id: str | None = None, user_id: str | None = None
    ) -> list[VerificationOutcome]:
        stmt = select(VerificationRow).order_by(VerificationRow.created_at)
        if submission_id is not None:
            stmt = stmt.where(VerificationRow.submission_id == submission_id)
        if user_id is not None:
            stmt = stmt.where(VerificationRow.user_id == user_id)
        async with self.db.sessionmaker() as session:
            rows = await session.execute(stmt)
            return [VerificationOutcome.model_validate(r) for r in rows.scalars()]

    async def update_enrichment(self, verification_id: str, **fields: Any) -> VerificationOutcome:
        unknown = set(fields) - ENRICHMENT_FIELDS
        if unknown:
            raise ValueError(f"Not enrichment fields: {sorted(unknown)}")
        async with self.db.sessionmaker() as session, session.begin():
            row = await session.get(VerificationRow, verification_id)
            if row is None:
                raise VerificationNotFoundError(verification_id)
            for key, value in fields.items():
                setattr(row, key, value.value if isinstance(value, Enum) else value)
        return VerificationOutcome.model_validate(row)

    async def apply_override(
        self, verification_id: str, verdict: Verdict, reason: str, admin_id: str
    ) -> VerificationOutcome:
        async with self.db.sessionmaker() as session, session.begin():
            row = await session.get(VerificationRow, verification_id)
            if row is None:
                raise VerificationNotFoundError(verification_id)
            row.verdict = verdict.value
            row.admin_override = True
            row.admin_override_reason = reason
            row.admin_override_by = admin_id
        return VerificationOutcome.model_validate(row)

    # ── Audit log ──

    async def add_audit(self, entry: AuditEntry) -> AuditEntry:
        data = entry.model_dump(exclude={"id", "created_at"})
        data["status"] = entry.status.value
        row = AuditRow(id=_new_id("aud"), created_at=datetime.now(timezone.utc), **data)
        async with self.db.sessionmaker() as session, session.begin():
            session.add(row)
        return AuditEntry.model_validate(row)

    async def list_audit(self, submission_id: str | None = None, user_id: str | None = None) -> list[AuditEntry]:
        stmt = select(AuditRow).order_by(AuditRow.created_at)
        if submission_id is not None:
            stmt = stmt.where(AuditRow.submission_id == submission_id)
        if user_id is not None:
            stmt = stmt.where(AuditRow.user_id == user_id)
        async with self.db.sessionmaker() as session:
            rows = await session.execute(stmt)
            return [AuditEntry.model_validate(r) for r in rows.scalars()]
