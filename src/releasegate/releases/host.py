"""HTTP client for the release host (GitHub releases API)."""

import logging
from typing import Any

import httpx

from releasegate.common.config import ReleasegateSettings
from releasegate.common.exceptions import ReleaseHostUnavailableError

logger = logging.getLogger(__name__)


class ReleaseHostClient:
    """Lists releases of the product repository."""

    def __init__(self, settings: ReleasegateSettings, http: httpx.AsyncClient):
        self.base_url = settings.release_host_url.rstrip("/")
        self.token = settings.release_host_token
        self.owner = settings.release_owner
        self.repo = settings.release_repo
        self.page_size = settings.release_page_size
        self.max_pages = settings.release_max_pages
        self._http = http

    def auth_headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            **self.auth_headers(),
        }

    async def _get(self, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._http.get(f"{self.base_url}{path}", headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise ReleaseHostUnavailableError(f"Release host request failed: {e}") from e
        if resp.status_code >= 500 or resp.status_code in (401, 403, 429):
            raise ReleaseHostUnavailableError(f"Release host returned HTTP {resp.status_code} for {path}")
        return resp

    async def list_releases(self) -> list[dict[str, Any]]:
        """All releases of the repository, following ``page`` pagination."""
        path = f"/repos/{self.owner}/{self.repo}/releases"
        releases: list[dict[str, Any]] = []
        for page in range(1, self.max_pages + 1):
            resp = await self._get(path, params={"per_page": self.page_size, "page": page})
            if resp.status_code >= 400:
                raise ReleaseHostUnavailableError(f"Release host returned HTTP {resp.status_code} for {path}")
            batch = resp.json()
            releases.extend(batch)
            if len(batch) < self.page_size:
                break
        return releases
