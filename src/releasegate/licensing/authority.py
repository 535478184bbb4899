"""HTTP client for the license authority (JSON:API style).

Id-based operations are bearer-token authenticated; key validation is not.
Transport errors and 5xx responses raise ``AuthorityUnavailableError`` so
callers can degrade; 4xx responses are answered in-band (None / False).
"""

import logging
from typing import Any, Optional

import httpx

from releasegate.common.config import ReleasegateSettings
from releasegate.common.exceptions import AuthorityUnavailableError
from releasegate.licensing.models import (
    KeyValidation,
    LicenseDetail,
    MachineActivation,
    MachineDetail,
)

logger = logging.getLogger(__name__)

JSON_API = "application/vnd.api+json"


class LicenseAuthorityClient:
    """Calls the license authority's licenses and machines endpoints."""

    def __init__(self, settings: ReleasegateSettings, http: httpx.AsyncClient):
        self.base_url = settings.license_authority_url.rstrip("/")
        self.api_token = settings.license_authority_token
        self._http = http

    def _headers(self, authenticated: bool = True) -> dict[str, str]:
        headers = {"Content-Type": JSON_API, "Accept": JSON_API}
        if authenticated and self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            resp = await self._http.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(authenticated),
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise AuthorityUnavailableError(f"License authority request failed: {e}") from e
        if resp.status_code >= 500:
            raise AuthorityUnavailableError(
                f"License authority returned HTTP {resp.status_code} for {method} {path}"
            )
        return resp

    async def validate_key(self, key: str) -> KeyValidation:
        """POST /licenses/actions/validate-key."""
        resp = await self._request(
            "POST", "/licenses/actions/validate-key",
            authenticated=False,
            json={"meta": {"key": key}},
        )
        try:
            body = resp.json()
        except ValueError:
            body = {}
        meta = body.get("meta") or {}
        data = body.get("data")

        if resp.status_code >= 400:
            return KeyValidation(
                valid=False,
                code=meta.get("code") or ("NOT_FOUND" if resp.status_code == 404 else "INVALID"),
                detail=meta.get("detail") or "",
            )

        return KeyValidation(
            valid=bool(meta.get("valid")),
            code=meta.get("code") or "",
            detail=meta.get("detail") or "",
            license=LicenseDetail.from_resource(data) if data else None,
        )

    async def get_license(self, license_id: str) -> Optional[LicenseDetail]:
        """GET /licenses/{id}. Returns None when the authority does not know the id."""
        resp = await self._request("GET", f"/licenses/{license_id}")
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise AuthorityUnavailableError(
                f"License authority rejected lookup of {license_id}: HTTP {resp.status_code}"
            )
        return LicenseDetail.from_resource(resp.json()["data"])

    async def get_license_machines(self, license_id: str) -> list[MachineDetail]:
        """GET /licenses/{id}/machines."""
        resp = await self._request("GET", f"/licenses/{license_id}/machines")
        if resp.status_code >= 400:
            raise AuthorityUnavailableError(
                f"License authority rejected machine listing for {license_id}: HTTP {resp.status_code}"
            )
        return [MachineDetail.from_resource(m) for m in resp.json().get("data") or []]

    async def get_license_with_machines(self, license_id: str) -> Optional[LicenseDetail]:
        license = await self.get_license(license_id)
        if license is None:
            return None
        license.machines = await self.get_license_machines(license_id)
        return license

    async def activate_machine(
        self,
        license_id: str,
        fingerprint: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[MachineActivation]:
        """POST /licenses/{id}/machines.

        Returns None when the authority refuses the activation (seat cap
        reached, unknown or suspended license).
        """
        metadata = metadata or {}
        attributes: dict[str, Any] = {"fingerprint": fingerprint}
        name = metadata.get("name") or metadata.get("domain")
        if name:
            attributes["name"] = name
        attributes["metadata"] = metadata

        resp = await self._request(
            "POST", f"/licenses/{license_id}/machines",
            json={"data": {"type": "machines", "attributes": attributes}},
        )
        if resp.status_code >= 400:
            logger.info(
                "Activation rejected by license authority (HTTP %s)", resp.status_code,
                extra={"license_id": license_id, "status_code": resp.status_code},
            )
            return None

        data = resp.json()["data"]
        attrs = data.get("attributes") or {}
        return MachineActivation(id=str(data["id"]), fingerprint=attrs.get("fingerprint") or fingerprint)

    async def deactivate_machine(self, machine_id: str) -> bool:
        """DELETE /machines/{id}."""
        resp = await self._request("DELETE", f"/machines/{machine_id}")
        if resp.status_code >= 400:
            logger.info(
                "Deactivation rejected by license authority (HTTP %s)", resp.status_code,
                extra={"machine_id": machine_id, "status_code": resp.status_code},
            )
            return False
        return True
