"""Entitlement policy: may these licenses download this release?

Pure functions with an explicit ``now`` so they can be tested without a clock.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from releasegate.licensing.models import LicenseDetail
from releasegate.releases.catalog import ReleaseDescriptor

ACTIVE_STATUS = "active"


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def is_license_active(license: LicenseDetail, now: datetime) -> bool:
    if license.status.lower() != ACTIVE_STATUS:
        return False
    if not license.expiry:
        return True
    expires_at = license.expires_at
    return expires_at is not None and expires_at >= now


def latest_expiry(licenses: Iterable[LicenseDetail]) -> Optional[datetime]:
    """Latest parsable expiry across all licenses."""
    expiries = [lic.expires_at for lic in licenses]
    parsed = [e for e in expiries if e is not None]
    return max(parsed) if parsed else None


def has_active_license(licenses: Iterable[LicenseDetail], now: Optional[datetime] = None) -> bool:
    current = _now(now)
    return any(is_license_active(lic, current) for lic in licenses)


def is_release_allowed_for_licenses(
    release: ReleaseDescriptor,
    licenses: list[LicenseDetail],
    now: Optional[datetime] = None,
) -> bool:
    """An active license allows every release; otherwise a release is allowed
    if it was published on or before the latest expiry."""
    current = _now(now)
    if any(is_license_active(lic, current) for lic in licenses):
        return True

    expiry = latest_expiry(licenses)
    if expiry is None:
        return False
    return release.published_at <= expiry
