"""Tests for the audit log writer."""

import pytest

from questproof.models.enums import AuditStatus


class BrokenStore:
    async def add_audit(self, entry):
        raise RuntimeError("database locked")


class TestAuditLogWriter:
    @pytest.mark.asyncio
    async def test_record_and_query(self, store):
        from questproof.core.audit import AuditLogWriter

        writer = AuditLogWriter(store)
        await writer.record(
            submission_id="sub1",
            user_id="user1",
            verification_id="ver_1",
            model_used="stub-judge",
            status=AuditStatus.SUCCESS,
            confidence=0.9,
            execution_time_ms=12.5,
        )
        await writer.record(
            submission_id="sub2",
            user_id="user1",
            model_used="fallback",
            status=AuditStatus.TIMEOUT,
            execution_time_ms=20000.0,
            error_message="Vision judge timed out",
        )

        by_submission = await writer.for_submission("sub1")
        assert len(by_submission) == 1
        entry = by_submission[0]
        assert entry.id.startswith("aud_")
        assert entry.status == AuditStatus.SUCCESS
        assert entry.confidence == 0.9
        assert entry.created_at is not None

        by_user = await writer.for_user("user1")
        assert [e.submission_id for e in by_user] == ["sub1", "sub2"]
        assert by_user[1].error_message == "Vision judge timed out"

    @pytest.mark.asyncio
    async def test_negative_elapsed_is_clamped(self, store):
        from questproof.core.audit import AuditLogWriter

        entry = await AuditLogWriter(store).record(
            submission_id="sub1", model_used="m", status=AuditStatus.ERROR, execution_time_ms=-3.0
        )
        assert entry.execution_time_ms == 0.0

    @pytest.mark.asyncio
    async def test_write_failure_does_not_raise(self):
        from questproof.core.audit import AuditLogWriter

        entry = await AuditLogWriter(BrokenStore()).record(
            submission_id="sub1", model_used="m", status=AuditStatus.SUCCESS, execution_time_ms=1.0
        )
        assert entry is None
