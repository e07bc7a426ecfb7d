"""QuestProof admin API endpoints (override and specialist enrichment)."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from questproof.api.deps import get_pipeline, get_specialists, get_store, require_admin
from questproof.core.orchestrator import VerificationPipeline
from questproof.exceptions import OverrideError, SpecialistError, VerificationNotFoundError
from questproof.models.schemas import OverrideRequest, VerificationOutcome
from questproof.specialists.runner import SpecialistRunner
from questproof.storage.repository import VerificationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


class OverrideResponse(BaseModel):
    """Overridden outcome plus the lifecycle effect applied to the submission."""

    verification: VerificationOutcome
    lifecycle_action: str
    lifecycle_errors: list[str]


class SpecialistResponse(BaseModel):
    """Result of one specialist run; ran is False when skipped or discarded."""

    verification: VerificationOutcome | None
    ran: bool
    result: dict[str, Any] | None = None


@router.post("/verifications/{verification_id}/override", response_model=OverrideResponse)
async def override_verification(
    verification_id: str,
    request: OverrideRequest,
    pipeline: VerificationPipeline = Depends(get_pipeline),
) -> OverrideResponse:
    try:
        outcome, lifecycle = await pipeline.lifecycle.override(
            verification_id, request.verdict, request.reason, request.admin_id
        )
    except VerificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OverrideError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return OverrideResponse(
        verification=outcome,
        lifecycle_action=lifecycle.action.value,
        lifecycle_errors=lifecycle.errors,
    )


@router.post("/verifications/{verification_id}/deepfake", response_model=SpecialistResponse)
async def run_deepfake_check(
    verification_id: str,
    specialists: SpecialistRunner = Depends(get_specialists),
    store: VerificationStore = Depends(get_store),
) -> SpecialistResponse:
    try:
        result = await specialists.run_deepfake(verification_id)
    except VerificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except SpecialistError as e:
        logger.warning("[%s] Deepfake check failed: %s", verification_id, e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return SpecialistResponse(
        verification=await store.get_verification(verification_id),
        ran=result is not None,
        result=result.to_dict() if result else None,
    )


@router.delete("/verifications/{verification_id}/deepfake", response_model=VerificationOutcome)
async def reset_deepfake_check(
    verification_id: str,
    specialists: SpecialistRunner = Depends(get_specialists),
) -> VerificationOutcome:
    try:
        return await specialists.reset_deepfake(verification_id)
    except VerificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/verifications/{verification_id}/analysis", response_model=SpecialistResponse)
async def run_analysis_check(
    verification_id: str,
    specialists: SpecialistRunner = Depends(get_specialists),
    store: VerificationStore = Depends(get_store),
) -> SpecialistResponse:
    try:
        report = await specialists.run_analysis(verification_id)
    except VerificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except SpecialistError as e:
        logger.warning("[%s] Analysis check failed: %s", verification_id, e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return SpecialistResponse(
        verification=await store.get_verification(verification_id),
        ran=report is not None,
        result={"analysis_report": report} if report else None,
    )


@router.delete("/verifications/{verification_id}/analysis", response_model=VerificationOutcome)
async def reset_analysis_check(
    verification_id: str,
    specialists: SpecialistRunner = Depends(get_specialists),
) -> VerificationOutcome:
    try:
        return await specialists.reset_analysis(verification_id)
    except VerificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
