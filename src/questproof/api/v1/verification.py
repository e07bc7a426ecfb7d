"""QuestProof verification API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from questproof.api.deps import get_pipeline, get_store
from questproof.core.orchestrator import VerificationPipeline
from questproof.exceptions import QuestProofError, SubmissionNotFoundError
from questproof.models.schemas import AuditEntry, VerificationOutcome, VerificationRequest
from questproof.storage.repository import VerificationStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Verification"])


@router.post("/verifications", response_model=VerificationOutcome)
async def create_verification(
    request: VerificationRequest,
    pipeline: VerificationPipeline = Depends(get_pipeline),
) -> VerificationOutcome:
    """Run one verification attempt for a submission.

    Provider failures never surface here; they produce an uncertain outcome.
    """
    return await pipeline.verify(request)


@router.post("/submissions/{submission_id}/reverify", response_model=VerificationOutcome)
async def reverify_submission(
    submission_id: str,
    pipeline: VerificationPipeline = Depends(get_pipeline),
) -> VerificationOutcome:
    """Explicitly re-run verification; creates a new outcome record."""
    try:
        return await pipeline.verify_submission(submission_id)
    except SubmissionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except QuestProofError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.get("/verifications/{verification_id}", response_model=VerificationOutcome)
async def get_verification(
    verification_id: str,
    store: VerificationStore = Depends(get_store),
) -> VerificationOutcome:
    outcome = await store.get_verification(verification_id)
    if outcome is None:
        raise HTTPException(status_code=404, detail="Verification not found")
    return outcome


@router.get("/submissions/{submission_id}/verifications", response_model=list[VerificationOutcome])
async def list_submission_verifications(
    submission_id: str,
    store: VerificationStore = Depends(get_store),
) -> list[VerificationOutcome]:
    return await store.list_verifications(submission_id=submission_id)


@router.get("/users/{user_id}/verifications", response_model=list[VerificationOutcome])
async def list_user_verifications(
    user_id: str,
    store: VerificationStore = Depends(get_store),
) -> list[VerificationOutcome]:
    return await store.list_verifications(user_id=user_id)


@router.get("/submissions/{submission_id}/audit", response_model=list[AuditEntry])
async def list_submission_audit(
    submission_id: str,
    store: VerificationStore = Depends(get_store),
) -> list[AuditEntry]:
    return await store.list_audit(submission_id=submission_id)


@router.get("/users/{user_id}/audit", response_model=list[AuditEntry])
async def list_user_audit(
    user_id: str,
    store: VerificationStore = Depends(get_store),
) -> list[AuditEntry]:
    return await store.list_audit(user_id=user_id)
