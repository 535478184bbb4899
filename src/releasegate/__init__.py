"""Releasegate: license entitlement resolution and gated release downloads."""

from releasegate.downloads.token import (
    DownloadTokenPayload,
    create_download_token,
    verify_download_token,
)
from releasegate.licensing.policy import is_release_allowed_for_licenses
from releasegate.licensing.references import extract_license_ids, extract_license_references
from releasegate.releases.catalog import normalize_release_version

__all__ = [
    "DownloadTokenPayload",
    "create_download_token",
    "verify_download_token",
    "is_release_allowed_for_licenses",
    "extract_license_ids",
    "extract_license_references",
    "normalize_release_version",
]
__version__ = "0.1.0"
