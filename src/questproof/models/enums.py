"""QuestProof enumerations shared by models, storage and API."""

from __future__ import annotations

from enum import Enum


class Verdict(str, Enum):
    VERIFIED = "verified"
    UNCERTAIN = "uncertain"
    REJECTED = "rejected"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


class DeepfakeVerdict(str, Enum):
    REAL = "REAL"
    FAKE = "FAKE"


class LifecycleAction(str, Enum):
    """What the lifecycle controller did to a submission."""

    APPROVED = "approved"
    UNCHANGED = "unchanged"
    PURGED = "purged"
    MISSING = "missing"
