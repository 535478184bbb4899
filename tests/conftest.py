"""Shared test fixtures for Releasegate.

``FakeUpstream`` plays the commerce store, the license authority and the
release host behind a single ``httpx.MockTransport``.
"""

import json
from typing import Any, Optional
from urllib.parse import parse_qs

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from releasegate.common.config import ReleasegateSettings

DOWNLOAD_SECRET = "test-download-token-secret"
AUTHORITY_TOKEN = "test-authority-token"
SESSION_TOKEN = "session-token-alice"

COMMERCE_URL = "http://commerce.test"
AUTHORITY_URL = "http://authority.test/v1"
RELEASE_HOST_URL = "http://github.test"
OWNER = "wcpos"
REPO = "woocommerce-pos-pro"

SETTINGS_DEFAULTS = {
    "commerce_url": COMMERCE_URL,
    "license_authority_url": AUTHORITY_URL,
    "license_authority_token": AUTHORITY_TOKEN,
    "release_host_url": RELEASE_HOST_URL,
    "release_host_token": "gh-token",
    "release_owner": OWNER,
    "release_repo": REPO,
    "download_token_secret": DOWNLOAD_SECRET,
}


def license_resource(
    license_id: str,
    key: str,
    status: str = "ACTIVE",
    expiry: Optional[str] = None,
    max_machines: int = 2,
) -> dict[str, Any]:
    return {
        "id": license_id,
        "type": "licenses",
        "attributes": {
            "key": key,
            "status": status,
            "expiry": expiry,
            "maxMachines": max_machines,
            "metadata": {},
            "created": "2025-01-01T00:00:00Z",
        },
        "relationships": {"policy": {"data": {"id": "policy-yearly"}}},
    }


def release_entry(
    tag: str,
    published_at: str,
    draft: bool = False,
    prerelease: bool = False,
    asset_name: Optional[str] = None,
) -> dict[str, Any]:
    version = tag.lstrip("v")
    name = asset_name or f"woocommerce-pos-pro-{version}.zip"
    return {
        "tag_name": tag,
        "name": f"Release {tag}",
        "body": f"Notes for {tag}",
        "draft": draft,
        "prerelease": prerelease,
        "published_at": published_at,
        "assets": [
            {
                "name": name,
                "size": 1024,
                "url": f"{RELEASE_HOST_URL}/repos/{OWNER}/{REPO}/releases/assets/{version}",
                "browser_download_url": f"http://downloads.test/{OWNER}/{REPO}/{tag}/{name}",
            }
        ],
    }


class FakeUpstream:
    """In-memory upstream services keyed by request host."""

    def __init__(self):
        self.customers: dict[str, dict[str, Any]] = {}
        self.orders: dict[str, list[dict[str, Any]]] = {}
        self.licenses: dict[str, dict[str, Any]] = {}
        self.machines: dict[str, list[dict[str, Any]]] = {}
        self.releases: list[dict[str, Any]] = []
        self.assets: dict[str, tuple[int, bytes]] = {}
        self.down_hosts: set[str] = set()
        self.error_paths: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._machine_seq = 0

    # ── Seeding helpers ──

    def add_customer(self, token: str, customer_id: str, email: str = "alice@example.com") -> None:
        self.customers[token] = {"id": customer_id, "email": email}
        self.orders.setdefault(token, [])

    def add_order(self, token: str, metadata: dict[str, Any], items: Optional[list] = None) -> None:
        orders = self.orders.setdefault(token, [])
        orders.append({
            "id": f"order_{len(orders) + 1}",
            "status": "completed",
            "email": "alice@example.com",
            "currency_code": "usd",
            "total": 12900,
            "items": items or [],
            "metadata": metadata,
        })

    def add_license(self, license_id: str, key: str, **kwargs: Any) -> None:
        self.licenses[license_id] = license_resource(license_id, key, **kwargs)
        self.machines.setdefault(license_id, [])

    def add_machine(self, license_id: str, machine_id: str, fingerprint: str) -> None:
        self.machines.setdefault(license_id, []).append({
            "id": machine_id,
            "type": "machines",
            "attributes": {
                "fingerprint": fingerprint,
                "name": fingerprint,
                "metadata": {},
                "created": "2025-06-01T00:00:00Z",
            },
        })

    def add_release(self, tag: str, published_at: str, **kwargs: Any) -> dict[str, Any]:
        entry = release_entry(tag, published_at, **kwargs)
        self.releases.append(entry)
        return entry

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    # ── Routing ──

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path
        if host in self.down_hosts:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.error_paths:
            return httpx.Response(500, json={"error": "boom"})

        if host == "commerce.test":
            return self._commerce(request)
        if host == "authority.test":
            return self._authority(request)
        if host == "github.test" and "/releases/assets/" not in path:
            return self._release_host(request)
        status, body = self.assets.get(str(request.url), (404, b""))
        return httpx.Response(status, content=body)

    def _token(self, request: httpx.Request) -> str:
        return request.headers.get("authorization", "").removeprefix("Bearer ")

    def _commerce(self, request: httpx.Request) -> httpx.Response:
        token = self._token(request)
        if token not in self.customers:
            return httpx.Response(401, json={"message": "Unauthorized"})
        if request.url.path == "/store/customers/me":
            return httpx.Response(200, json={"customer": self.customers[token]})
        if request.url.path == "/store/orders":
            params = parse_qs(request.url.query.decode())
            limit = int(params["limit"][0])
            offset = int(params["offset"][0])
            orders = self.orders.get(token, [])
            return httpx.Response(200, json={
                "orders": orders[offset:offset + limit],
                "count": len(orders),
            })
        return httpx.Response(404)

    def _authority(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        parts = [p for p in path.split("/") if p]

        if path == "/licenses/actions/validate-key":
            key = json.loads(request.content)["meta"]["key"]
            for resource in self.licenses.values():
                if resource["attributes"]["key"] == key:
                    status = resource["attributes"]["status"]
                    valid = status.upper() == "ACTIVE"
                    return httpx.Response(200, json={
                        "meta": {"valid": valid, "code": "VALID" if valid else status.upper(), "detail": ""},
                        "data": resource,
                    })
            return httpx.Response(404, json={"meta": {"valid": False, "code": "NOT_FOUND", "detail": "not found"}})

        if request.headers.get("authorization") != f"Bearer {AUTHORITY_TOKEN}":
            return httpx.Response(401, json={"errors": [{"detail": "unauthorized"}]})

        if parts[0] == "licenses" and len(parts) == 2 and request.method == "GET":
            resource = self.licenses.get(parts[1])
            if resource is None:
                return httpx.Response(404, json={"errors": [{"detail": "not found"}]})
            return httpx.Response(200, json={"data": resource})

        if parts[0] == "licenses" and len(parts) == 3 and parts[2] == "machines":
            license_id = parts[1]
            if license_id not in self.licenses:
                return httpx.Response(404, json={"errors": [{"detail": "not found"}]})
            machines = self.machines.setdefault(license_id, [])
            if request.method == "GET":
                return httpx.Response(200, json={"data": machines})
            cap = self.licenses[license_id]["attributes"]["maxMachines"]
            if len(machines) >= cap:
                return httpx.Response(422, json={"errors": [{"code": "MACHINE_LIMIT_EXCEEDED"}]})
            attrs = json.loads(request.content)["data"]["attributes"]
            self._machine_seq += 1
            machine = {
                "id": f"machine-{self._machine_seq}",
                "type": "machines",
                "attributes": {**attrs, "created": "2026-01-01T00:00:00Z"},
            }
            machines.append(machine)
            return httpx.Response(201, json={"data": machine})

        if parts[0] == "machines" and len(parts) == 2 and request.method == "DELETE":
            for machines in self.machines.values():
                for machine in machines:
                    if machine["id"] == parts[1]:
                        machines.remove(machine)
                        return httpx.Response(204)
            return httpx.Response(404, json={"errors": [{"detail": "not found"}]})

        return httpx.Response(404)

    def _release_host(self, request: httpx.Request) -> httpx.Response:
        base = f"/repos/{OWNER}/{REPO}/releases"
        path = request.url.path
        if path == base:
            params = parse_qs(request.url.query.decode())
            per_page = int(params["per_page"][0])
            page = int(params["page"][0])
            start = (page - 1) * per_page
            return httpx.Response(200, json=self.releases[start:start + per_page])
        return httpx.Response(404)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> ReleasegateSettings:
        values = dict(SETTINGS_DEFAULTS)
        values.update(overrides)
        return ReleasegateSettings(**values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
async def http(upstream):
    async with httpx.AsyncClient(transport=upstream.transport()) as client:
        yield client


@pytest.fixture
def app(upstream, monkeypatch):
    """Create a test app whose outbound HTTP goes to ``upstream``."""
    for name, value in SETTINGS_DEFAULTS.items():
        monkeypatch.setenv(f"RELEASEGATE_{name.upper()}", value)

    # Clear caches and singletons so new env vars take effect
    from releasegate.common.config import get_settings
    get_settings.cache_clear()

    from releasegate.deps import reset_singletons, use_transport
    reset_singletons()
    use_transport(upstream.transport())

    from releasegate.app import create_app
    yield create_app()

    use_transport(None)
    reset_singletons()
    get_settings.cache_clear()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    from releasegate.deps import close_http_client
    await close_http_client()


@pytest.fixture
def customer_headers():
    return {"Authorization": f"Bearer {SESSION_TOKEN}"}


@pytest.fixture
def session_token():
    return SESSION_TOKEN
