"""Pydantic schemas for download endpoints."""

from datetime import datetime

from pydantic import BaseModel

from releasegate.releases.catalog import ReleaseDescriptor


class ReleaseResponse(BaseModel):
    version: str
    tag_name: str
    name: str
    release_notes: str
    published_at: datetime
    asset_name: str
    allowed: bool

    @classmethod
    def from_release(cls, release: ReleaseDescriptor, allowed: bool) -> "ReleaseResponse":
        return cls(
            version=release.version,
            tag_name=release.tag_name,
            name=release.name,
            release_notes=release.release_notes,
            published_at=release.published_at,
            asset_name=release.asset_name,
            allowed=allowed,
        )


class ReleaseListResponse(BaseModel):
    releases: list[ReleaseResponse]
    has_active_license: bool


class TokenRequest(BaseModel):
    version: str = "latest"


class TokenResponse(BaseModel):
    download_url: str
    version: str
    expires_at: int


class UpdateResponse(BaseModel):
    has_update: bool
    version: str
    published_at: datetime
    download_url: str
