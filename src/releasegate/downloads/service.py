"""Download service: release listing, token issuance, gated asset streaming."""

from dataclasses import dataclass
from typing import AsyncIterator, Optional
from urllib.parse import quote

import httpx
from packaging.version import InvalidVersion, Version

from releasegate.commerce.models import CommerceCustomer
from releasegate.common.config import ReleasegateSettings
from releasegate.common.exceptions import (
    AssetUnavailableError,
    EntitlementDeniedError,
    InvalidTokenError,
    LicenseNotFoundError,
    ReleaseNotFoundError,
    UnauthenticatedError,
)
from releasegate.common.logging import get_logger
from releasegate.downloads.token import (
    DownloadTokenPayload,
    create_download_token,
    now_millis,
    verify_download_token,
)
from releasegate.licensing.authority import LicenseAuthorityClient
from releasegate.licensing.models import LicenseDetail
from releasegate.licensing.policy import has_active_license, is_release_allowed_for_licenses
from releasegate.licensing.resolver import EntitlementService
from releasegate.releases.catalog import LATEST, ReleaseCatalog, ReleaseDescriptor, normalize_release_version

logger = get_logger("downloads")


@dataclass
class ReleaseListing:
    releases: list[tuple[ReleaseDescriptor, bool]]
    has_active_license: bool


@dataclass
class IssuedToken:
    token: str
    download_url: str
    version: str
    expires_at: int


@dataclass
class UpdateCheck:
    has_update: bool
    release: ReleaseDescriptor


@dataclass
class AssetStream:
    """An open upstream response for a release archive."""

    filename: str
    response: httpx.Response

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self.response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        await self.response.aclose()


def _parse_version(value: str) -> Version:
    try:
        return Version(normalize_release_version(value))
    except InvalidVersion:
        return Version("0.0.0")


class DownloadService:
    """Decides, mints and serves downloads. Every step re-checks entitlement."""

    def __init__(
        self,
        settings: ReleasegateSettings,
        catalog: ReleaseCatalog,
        entitlements: EntitlementService,
        authority: LicenseAuthorityClient,
        http: httpx.AsyncClient,
    ):
        self.settings = settings
        self.catalog = catalog
        self.entitlements = entitlements
        self.authority = authority
        self._http = http

    # ── Customer listing and tokens ──

    async def list_releases_with_allowed(self, customer: Optional[CommerceCustomer]) -> ReleaseListing:
        resolved = await self.entitlements.resolve_entitlements(customer)
        if not resolved.authenticated:
            raise UnauthenticatedError()

        releases = await self.catalog.list_releases()
        return ReleaseListing(
            releases=[(r, is_release_allowed_for_licenses(r, resolved.licenses)) for r in releases],
            has_active_license=has_active_license(resolved.licenses),
        )

    async def _require_allowed_release(self, customer: CommerceCustomer, version: str) -> ReleaseDescriptor:
        release = await self.catalog.find_release_by_version(version)
        if release is None:
            raise ReleaseNotFoundError()

        resolved = await self.entitlements.resolve_entitlements(customer)
        if not is_release_allowed_for_licenses(release, resolved.licenses):
            logger.info("Download denied by entitlement policy",
                        extra={"customer_id": customer.id, "version": release.version})
            raise EntitlementDeniedError()
        return release

    async def request_download_token(
        self, customer: Optional[CommerceCustomer], version: str = LATEST,
    ) -> IssuedToken:
        if customer is None:
            raise UnauthenticatedError()
        secret = self.settings.resolve_download_secret(customer.session_token)

        release = await self._require_allowed_release(customer, version)
        expires_at = now_millis() + self.settings.download_token_ttl * 1000
        token = create_download_token(
            DownloadTokenPayload(customer_id=customer.id, version=release.version, expires_at=expires_at),
            secret,
        )
        return IssuedToken(
            token=token,
            download_url=f"{self.settings.api_prefix}{self.settings.download_path}?token={quote(token, safe='')}",
            version=release.version,
            expires_at=expires_at,
        )

    async def stream_download(self, customer: Optional[CommerceCustomer], token: str) -> AssetStream:
        """Verify a token for the signed-in customer and open the release asset."""
        if customer is None:
            raise UnauthenticatedError()
        secret = self.settings.resolve_download_secret(customer.session_token)

        payload = verify_download_token(token, secret)
        if payload is None or payload.customer_id != customer.id:
            raise InvalidTokenError()

        release = await self._require_allowed_release(customer, payload.version)
        return await self.open_asset(release)

    # ── Key-based plugin channel ──

    async def _license_for_key(self, key: str) -> LicenseDetail:
        validation = await self.authority.validate_key(key)
        if validation.license is None:
            raise LicenseNotFoundError("License key not found")
        license = validation.license
        license.status = license.status.lower()
        return license

    async def allowed_releases_for_key(self, key: str) -> list[ReleaseDescriptor]:
        license = await self._license_for_key(key)
        releases = await self.catalog.list_releases()
        return [r for r in releases if is_release_allowed_for_licenses(r, [license])]

    async def check_update(self, key: str, instance: str, current_version: str) -> UpdateCheck:
        """Newest release the key is entitled to, and whether it beats ``current_version``.

        ``instance`` is informational: it is logged but not matched against the
        license's machines, so sites that never activated still get updates.
        """
        allowed = await self.allowed_releases_for_key(key)
        if not allowed:
            raise EntitlementDeniedError("No update is available for this license")
        latest = allowed[0]
        logger.debug("Update check from instance %s", instance, extra={"version": current_version})
        return UpdateCheck(
            has_update=_parse_version(latest.version) > _parse_version(current_version),
            release=latest,
        )

    async def stream_key_download(self, key: str, instance: str, version: str) -> AssetStream:
        """Open an entitled release archive for a license key. ``instance`` is only logged."""
        allowed = await self.allowed_releases_for_key(key)
        normalized = normalize_release_version(version)
        if normalized == LATEST:
            release = allowed[0] if allowed else None
        else:
            release = next((r for r in allowed if r.version == normalized), None)
        if release is None:
            raise EntitlementDeniedError("Requested version is not available for this license")
        logger.info("Key download for instance %s", instance, extra={"version": release.version})
        return await self.open_asset(release)

    # ── Asset proxy ──

    async def _try_fetch(self, url: str, headers: dict[str, str]) -> Optional[httpx.Response]:
        request = self._http.build_request("GET", url, headers=headers)
        try:
            resp = await self._http.send(request, stream=True, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning("Asset fetch failed: %s", e, extra={"upstream": "release_host"})
            return None
        empty = resp.status_code == 204 or resp.headers.get("content-length") == "0"
        if not resp.is_success or empty:
            logger.warning("Asset fetch returned HTTP %s", resp.status_code,
                           extra={"upstream": "release_host", "status_code": resp.status_code})
            await resp.aclose()
            return None
        return resp

    async def open_asset(self, release: ReleaseDescriptor) -> AssetStream:
        """API asset URL first (authenticated), then the public browser URL."""
        accept = {"Accept": "application/octet-stream"}
        if release.asset_api_url:
            resp = await self._try_fetch(release.asset_api_url, {**accept, **self.catalog.host.auth_headers()})
            if resp is not None:
                return AssetStream(filename=release.asset_name, response=resp)

        if release.asset_url:
            resp = await self._try_fetch(release.asset_url, accept)
            if resp is not None:
                return AssetStream(filename=release.asset_name, response=resp)

        raise AssetUnavailableError()
