"""Activation API router for the key-based plugin channel."""

from fastapi import APIRouter, HTTPException, Query

from releasegate.common.exceptions import ReleasegateError
from releasegate.activation.schemas import (
    ActivateRequest,
    ActivateResponse,
    DeactivateRequest,
    DeactivateResponse,
    LicenseStatusResponse,
)

router = APIRouter()

ACTIVATION_REJECTED = {
    "error": "Activation rejected: license is invalid or has no free seats",
    "code": "ACTIVATION_REJECTED",
}


def _get_service():
    from releasegate.deps import get_activation_service
    return get_activation_service()


@router.post("/pro/license/activate", response_model=ActivateResponse)
async def activate(body: ActivateRequest):
    svc = _get_service()
    try:
        activation = await svc.activate_for_key(body.key, body.fingerprint, body.metadata)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())

    if activation is None:
        raise HTTPException(status_code=422, detail=ACTIVATION_REJECTED)
    return ActivateResponse(id=activation.id, fingerprint=activation.fingerprint)


@router.post("/pro/license/deactivate", response_model=DeactivateResponse)
async def deactivate(body: DeactivateRequest):
    svc = _get_service()
    try:
        result = await svc.deactivate_for_key(body.key, body.machine_id)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    return DeactivateResponse(success=result)


@router.get("/pro/license/status", response_model=LicenseStatusResponse)
async def status(key: str = Query(..., min_length=1)):
    svc = _get_service()
    try:
        license = await svc.status_for_key(key)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    return LicenseStatusResponse.from_detail(license)
