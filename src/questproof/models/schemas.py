"""QuestProof pydantic schemas.

Request, metadata, judgment, outcome and audit shapes that cross module,
storage and API boundaries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from questproof.models.enums import AuditStatus, DeepfakeVerdict, Verdict


class VerdictThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    verified: float = Field(0.85, ge=0.0, le=1.0)
    uncertain: float = Field(0.60, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _ordered(self) -> VerdictThresholds:
        if self.uncertain > self.verified:
            raise ValueError("uncertain threshold must not exceed verified threshold")
        return self


class PipelineConfig(BaseModel):
    """Options recognized by the verification pipeline."""

    model_config = ConfigDict(frozen=True)

    gemini_api_key: str | None = None
    judge_model: str = "gemini-1.5-flash"
    groq_api_key: str | None = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_judge_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    gateway_api_key: str | None = None
    gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    gateway_judge_model: str = "google/gemini-2.5-flash"
    judge_timeout_s: float = Field(20.0, gt=0)
    geofence_threshold_m: float = Field(500.0, gt=0)
    thresholds: VerdictThresholds = Field(default_factory=VerdictThresholds)
    run_specialists: bool = False

    @property
    def judge_enabled(self) -> bool:
        return bool(self.gemini_api_key or self.groq_api_key or self.gateway_api_key)


class VerificationRequest(BaseModel):
    """Input bundle for one verification attempt."""

    model_config = ConfigDict(frozen=True)

    submission_id: str = Field(..., min_length=1)
    photo_url: str = Field(..., min_length=1)
    quest_title: str = ""
    quest_description: str = ""
    quest_location: str = ""
    quest_latitude: float | None = Field(None, ge=-90.0, le=90.0)
    quest_longitude: float | None = Field(None, ge=-180.0, le=180.0)
    user_latitude: float | None = Field(None, ge=-90.0, le=90.0)
    user_longitude: float | None = Field(None, ge=-180.0, le=180.0)
    user_id: str | None = None
    quest_id: str | None = None


class ExposureInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    exposure_time: float | None = None
    f_number: float | None = None
    iso: int | None = None
    focal_length: float | None = None

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in (self.exposure_time, self.f_number, self.iso, self.focal_length))


class PhotoMetadata(BaseModel):
    """Attributes embedded in the photo. Absence is a signal, not an error."""

    model_config = ConfigDict(frozen=True)

    has_metadata: bool = False
    latitude: float | None = None
    longitude: float | None = None
    captured_at: datetime | None = None
    timestamp_raw: str | None = None
    camera: str | None = None
    software: str | None = None
    exposure: ExposureInfo = Field(default_factory=ExposureInfo)
    width: int | None = None
    height: int | None = None

    @property
    def has_gps(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def timestamp_invalid(self) -> bool:
        return self.timestamp_raw is not None and self.captured_at is None


class VisionJudgment(BaseModel):
    """Sub-scores returned by the remote vision judge, clamped on receipt."""

    model_config = ConfigDict(frozen=True)

    quest_match: float = Field(..., ge=0.0, le=1.0)
    visual_scene_match: float = Field(..., ge=0.0, le=1.0)
    ai_authenticity: float = Field(..., ge=0.0, le=1.0)
    scene_relevance: float = Field(..., ge=0.0, le=1.0)
    rationale: str = ""
    provider: str | None = None


class VerificationOutcome(BaseModel):
    """Aggregate record of one verification attempt."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    submission_id: str
    user_id: str | None = None
    quest_id: str | None = None
    photo_url: str | None = None

    geofence_score: float
    authenticity_score: float
    quest_match: float
    visual_scene_match: float
    ai_authenticity: float
    scene_relevance: float
    final_confidence: float = Field(..., ge=0.0, le=1.0)
    verdict: Verdict
    reason: str
    photo_metadata: PhotoMetadata | None = None
    distance_m: float | None = None
    model_used: str
    execution_time_ms: float = 0.0
    created_at: datetime | None = None

    deepfake_verdict: DeepfakeVerdict | None = None
    deepfake_label: str | None = None
    deepfake_confidence: float | None = None
    analysis_report: str | None = None
    analyzed_at: datetime | None = None

    admin_override: bool = False
    admin_override_reason: str | None = None
    admin_override_by: str | None = None


class AuditEntry(BaseModel):
    """One write-once row per verification attempt."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    submission_id: str
    user_id: str | None = None
    verification_id: str | None = None
    model_used: str
    status: AuditStatus
    confidence: float | None = None
    execution_time_ms: float = Field(..., ge=0.0)
    error_message: str | None = None
    created_at: datetime | None = None


class OverrideRequest(BaseModel):
    verdict: Verdict
    reason: str = Field(..., min_length=1)
    admin_id: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _terminal_only(self) -> OverrideRequest:
        if self.verdict == Verdict.UNCERTAIN:
            raise ValueError("override must force verified or rejected")
        if not self.reason.strip():
            raise ValueError("override requires a justification")
        return self


class SpecialistReport(BaseModel):
    """Independent results of the specialist checks for one outcome."""

    verification_id: str
    deepfake: dict[str, Any] | None = None
    deepfake_error: str | None = None
    analysis_report: str | None = None
    analysis_error: str | None = None
