"""Download API router: release listing, tokens, and the asset proxy."""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from releasegate.commerce.models import CommerceCustomer
from releasegate.common.config import get_settings
from releasegate.common.exceptions import ReleasegateError
from releasegate.common.security import current_customer
from releasegate.downloads.schemas import (
    ReleaseListResponse,
    ReleaseResponse,
    TokenRequest,
    TokenResponse,
    UpdateResponse,
)
from releasegate.downloads.service import AssetStream

router = APIRouter()


def _get_service():
    from releasegate.deps import get_download_service
    return get_download_service()


def _stream_response(stream: AssetStream) -> StreamingResponse:
    return StreamingResponse(
        stream.aiter_bytes(),
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{stream.filename}"',
            "Cache-Control": "private, no-store",
        },
        background=BackgroundTask(stream.aclose),
    )


@router.get("/account/downloads", response_model=ReleaseListResponse)
async def list_downloads(customer: Optional[CommerceCustomer] = Depends(current_customer)):
    svc = _get_service()
    try:
        listing = await svc.list_releases_with_allowed(customer)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    return ReleaseListResponse(
        releases=[ReleaseResponse.from_release(r, allowed) for r, allowed in listing.releases],
        has_active_license=listing.has_active_license,
    )


@router.post("/account/downloads/token", response_model=TokenResponse)
async def request_token(
    body: Optional[TokenRequest] = None,
    customer: Optional[CommerceCustomer] = Depends(current_customer),
):
    svc = _get_service()
    version = body.version if body is not None else "latest"
    try:
        issued = await svc.request_download_token(customer, version)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    return TokenResponse(download_url=issued.download_url, version=issued.version, expires_at=issued.expires_at)


@router.get("/account/download")
async def download(
    token: str = Query(..., min_length=1),
    customer: Optional[CommerceCustomer] = Depends(current_customer),
):
    svc = _get_service()
    try:
        stream = await svc.stream_download(customer, token)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    return _stream_response(stream)


# ── Key-based plugin channel ──

@router.get("/pro/update/{current_version}", response_model=UpdateResponse)
async def check_update(
    current_version: str,
    key: str = Query(..., min_length=1),
    instance: str = Query(..., min_length=1),
):
    svc = _get_service()
    try:
        result = await svc.check_update(key, instance, current_version)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())

    release = result.release
    download_url = (
        f"{get_settings().api_prefix}/pro/download/{release.version}"
        f"?key={quote(key, safe='')}&instance={quote(instance, safe='')}"
    )
    return UpdateResponse(
        has_update=result.has_update,
        version=release.version,
        published_at=release.published_at,
        download_url=download_url,
    )


@router.get("/pro/download/{version}")
async def download_with_key(
    version: str,
    key: str = Query(..., min_length=1),
    instance: str = Query(..., min_length=1),
):
    svc = _get_service()
    try:
        stream = await svc.stream_key_download(key, instance, version)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    return _stream_response(stream)
