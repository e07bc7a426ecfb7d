"""QuestProof ORM tables.

Submissions, quests and social rows belong to the surrounding application; this
service reads them and mutates submission status. Verification outcomes and
audit entries are owned here and are append-only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from questproof.storage.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestRow(Base):
    __tablename__ = "quests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(255), default="")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)


class SubmissionRow(Base):
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    # Real relation to the quest, including generated quests
    quest_id: Mapped[str | None] = mapped_column(ForeignKey("quests.id", ondelete="SET NULL"), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_urls: Mapped[list[str]] = mapped_column(JSON, default=list)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    verification_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PostLikeRow(Base):
    __tablename__ = "post_likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class PostCommentRow(Base):
    __tablename__ = "post_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    body: Mapped[str] = mapped_column(Text, default="")


class PostShareRow(Base):
    __tablename__ = "post_shares"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class VerificationRow(Base):
    __tablename__ = "ai_verifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # No FK: history outlives a purged submission
    submission_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    quest_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    geofence_score: Mapped[float] = mapped_column(Float)
    authenticity_score: Mapped[float] = mapped_column(Float)
    quest_match: Mapped[float] = mapped_column(Float)
    visual_scene_match: Mapped[float] = mapped_column(Float)
    ai_authenticity: Mapped[float] = mapped_column(Float)
    scene_relevance: Mapped[float] = mapped_column(Float)
    final_confidence: Mapped[float] = mapped_column(Float)
    verdict: Mapped[str] = mapped_column(String(16), index=True)
    reason: Mapped[str] = mapped_column(Text, default="")
    photo_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    distance_m: Mapped[float | None] = mapped_column(Float, nullable=True)
    model_used: Mapped[str] = mapped_column(String(128))
    execution_time_ms: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    deepfake_verdict: Mapped[str | None] = mapped_column(String(8), nullable=True)
    deepfake_label: Mapped[str | None] = mapped_column(String(128), nullable=True)
    deepfake_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    analysis_report: Mapped[str | None] = mapped_column(Text, nullable=True)
    analyzed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    admin_override: Mapped[bool] = mapped_column(Boolean, default=False)
    admin_override_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_override_by: Mapped[str | None] = mapped_column(String(64), nullable=True)


class AuditRow(Base):
    __tablename__ = "ai_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    submission_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    verification_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    model_used: Mapped[str] = mapped_column(String(128))
    status: Mapped[str] = mapped_column(String(16))
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    execution_time_ms: Mapped[float] = mapped_column(Float, default=0.0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
