"""QuestProof exception hierarchy."""

from __future__ import annotations


class QuestProofError(Exception):
    """Base class for pipeline errors."""


class JudgeError(QuestProofError):
    """Remote vision judge failed (network, provider or missing image)."""


class JudgeTimeoutError(JudgeError):
    """Remote vision judge exceeded its fixed timeout."""


class JudgeResponseError(JudgeError):
    """Remote vision judge answered with an unusable payload."""


class SubmissionNotFoundError(QuestProofError):
    def __init__(self, submission_id: str) -> None:
        super().__init__(f"Submission {submission_id} not found")
        self.submission_id = submission_id


class VerificationNotFoundError(QuestProofError):
    def __init__(self, verification_id: str) -> None:
        super().__init__(f"Verification {verification_id} not found")
        self.verification_id = verification_id


class OverrideError(QuestProofError):
    """Admin override rejected (missing justification or invalid verdict)."""


class SpecialistError(QuestProofError):
    """A secondary specialist check failed."""
