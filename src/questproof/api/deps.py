"""QuestProof API dependencies."""

from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException, Request

from questproof.container import Services
from questproof.core.orchestrator import VerificationPipeline
from questproof.specialists.runner import SpecialistRunner
from questproof.storage.repository import VerificationStore


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_pipeline(services: Services = Depends(get_services)) -> VerificationPipeline:
    return services.pipeline


def get_store(services: Services = Depends(get_services)) -> VerificationStore:
    return services.store


def get_specialists(services: Services = Depends(get_services)) -> SpecialistRunner:
    return services.specialists


def require_admin(
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
    services: Services = Depends(get_services),
) -> None:
    """Admin endpoints are disabled until an admin key is configured."""
    expected = services.settings.admin_api_key
    if not expected:
        raise HTTPException(status_code=403, detail="Admin endpoints are disabled")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=401, detail="Invalid admin key")
