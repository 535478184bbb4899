"""Dependency injection singletons for Releasegate.

Every service receives its collaborators through its constructor; this
module only decides which instances the HTTP app and CLI share.
"""

from typing import Optional

import httpx

from releasegate.activation.service import ActivationService
from releasegate.commerce.client import CommerceClient
from releasegate.common.config import get_settings
from releasegate.downloads.service import DownloadService
from releasegate.licensing.authority import LicenseAuthorityClient
from releasegate.licensing.resolver import EntitlementService, LicenseResolver
from releasegate.releases.catalog import ReleaseCatalog
from releasegate.releases.host import ReleaseHostClient

_transport: Optional[httpx.AsyncBaseTransport] = None
_http: Optional[httpx.AsyncClient] = None
_commerce: Optional[CommerceClient] = None
_authority: Optional[LicenseAuthorityClient] = None
_release_host: Optional[ReleaseHostClient] = None
_catalog: Optional[ReleaseCatalog] = None
_resolver: Optional[LicenseResolver] = None
_entitlements: Optional[EntitlementService] = None
_downloads: Optional[DownloadService] = None
_activation: Optional[ActivationService] = None


def use_transport(transport: Optional[httpx.AsyncBaseTransport]) -> None:
    """Route all outbound HTTP through ``transport`` (for testing)."""
    global _transport
    _transport = transport


def get_http_client() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(timeout=get_settings().http_timeout, transport=_transport)
    return _http


def get_commerce_client() -> CommerceClient:
    global _commerce
    if _commerce is None:
        _commerce = CommerceClient(get_settings(), get_http_client())
    return _commerce


def get_license_authority() -> LicenseAuthorityClient:
    global _authority
    if _authority is None:
        _authority = LicenseAuthorityClient(get_settings(), get_http_client())
    return _authority


def get_release_host() -> ReleaseHostClient:
    global _release_host
    if _release_host is None:
        _release_host = ReleaseHostClient(get_settings(), get_http_client())
    return _release_host


def get_release_catalog() -> ReleaseCatalog:
    global _catalog
    if _catalog is None:
        _catalog = ReleaseCatalog(get_settings(), get_release_host())
    return _catalog


def get_license_resolver() -> LicenseResolver:
    global _resolver
    if _resolver is None:
        _resolver = LicenseResolver(get_license_authority())
    return _resolver


def get_entitlement_service() -> EntitlementService:
    global _entitlements
    if _entitlements is None:
        _entitlements = EntitlementService(get_commerce_client(), get_license_resolver())
    return _entitlements


def get_download_service() -> DownloadService:
    global _downloads
    if _downloads is None:
        _downloads = DownloadService(
            get_settings(),
            get_release_catalog(),
            get_entitlement_service(),
            get_license_authority(),
            get_http_client(),
        )
    return _downloads


def get_activation_service() -> ActivationService:
    global _activation
    if _activation is None:
        _activation = ActivationService(get_license_authority(), get_entitlement_service())
    return _activation


async def close_http_client() -> None:
    global _http
    if _http is not None:
        await _http.aclose()
        _http = None


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _http, _commerce, _authority, _release_host, _catalog
    global _resolver, _entitlements, _downloads, _activation
    _http = None
    _commerce = None
    _authority = None
    _release_host = None
    _catalog = None
    _resolver = None
    _entitlements = None
    _downloads = None
    _activation = None
