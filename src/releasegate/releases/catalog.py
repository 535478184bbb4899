"""Release catalog: published product releases with their download asset."""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from releasegate.common.config import ReleasegateSettings
from releasegate.common.exceptions import ReleaseHostUnavailableError
from releasegate.common.logging import get_logger
from releasegate.licensing.models import parse_timestamp
from releasegate.releases.host import ReleaseHostClient

logger = get_logger("releases.catalog")

LATEST = "latest"


@dataclass(frozen=True)
class ReleaseDescriptor:
    version: str
    tag_name: str
    name: str
    release_notes: str
    published_at: datetime
    asset_name: str
    asset_url: str
    asset_api_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "tag_name": self.tag_name,
            "name": self.name,
            "release_notes": self.release_notes,
            "published_at": self.published_at.isoformat(),
            "asset_name": self.asset_name,
            "asset_url": self.asset_url,
        }


def normalize_release_version(version: str) -> str:
    """Strip leading ``v``/``V`` characters (``v1.2.3`` -> ``1.2.3``)."""
    return version.strip().lstrip("vV")


class ReleaseCatalog:
    """Maps release host entries to ``ReleaseDescriptor`` and caches the list.

    The cache is replaced wholesale once older than ``release_cache_ttl``.
    Concurrent readers may briefly see the previous list.
    """

    def __init__(self, settings: ReleasegateSettings, host: ReleaseHostClient):
        self.host = host
        self.product_slug = settings.release_product_slug.lower()
        self.asset_extension = settings.release_asset_extension.lower()
        self.ttl = settings.release_cache_ttl
        self._cache: Optional[list[ReleaseDescriptor]] = None
        self._cached_at: float = 0.0

    def _primary_asset(self, assets: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
        for asset in assets:
            name = (asset.get("name") or "").lower()
            if self.product_slug in name and name.endswith(self.asset_extension):
                return asset
        return None

    def to_descriptor(self, raw: dict[str, Any]) -> Optional[ReleaseDescriptor]:
        """Map one release host entry; None for drafts, prereleases and
        releases without the product archive."""
        if raw.get("draft") or raw.get("prerelease"):
            return None
        asset = self._primary_asset(raw.get("assets") or [])
        if asset is None:
            return None

        tag_name = raw.get("tag_name") or ""
        published_at = parse_timestamp(raw.get("published_at")) or datetime.now(timezone.utc)
        return ReleaseDescriptor(
            version=normalize_release_version(tag_name),
            tag_name=tag_name,
            name=raw.get("name") or tag_name,
            release_notes=raw.get("body") or "",
            published_at=published_at,
            asset_name=asset["name"],
            asset_url=asset.get("browser_download_url") or "",
            asset_api_url=asset.get("url"),
        )

    def clear_cache(self) -> None:
        self._cache = None
        self._cached_at = 0.0

    def _is_fresh(self) -> bool:
        return self._cache is not None and time.monotonic() - self._cached_at < self.ttl

    async def list_releases(self) -> list[ReleaseDescriptor]:
        """Published releases, newest first."""
        if self._is_fresh():
            return self._cache

        try:
            raw_releases = await self.host.list_releases()
        except ReleaseHostUnavailableError as e:
            if self._cache is not None:
                logger.warning("Serving cached releases: %s", e.message, extra={"upstream": "release_host"})
                return self._cache
            raise

        releases = [d for d in (self.to_descriptor(r) for r in raw_releases) if d is not None]
        releases.sort(key=lambda r: r.published_at, reverse=True)
        self._cache = releases
        self._cached_at = time.monotonic()
        return releases

    async def find_release_by_version(self, version: str) -> Optional[ReleaseDescriptor]:
        releases = await self.list_releases()
        if version == LATEST:
            return releases[0] if releases else None

        normalized = normalize_release_version(version)
        return next((r for r in releases if r.version == normalized), None)
