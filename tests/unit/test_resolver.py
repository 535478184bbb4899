"""Tests for licensing.resolver: reference resolution with fallbacks."""

import asyncio

import pytest

from releasegate.commerce.client import CommerceClient
from releasegate.commerce.models import CommerceCustomer, CommerceOrder
from releasegate.common.exceptions import AuthorityUnavailableError
from releasegate.licensing.authority import LicenseAuthorityClient
from releasegate.licensing.models import LicenseDetail
from releasegate.licensing.references import LicenseReference
from releasegate.licensing.resolver import (
    EntitlementService,
    LicenseResolver,
    build_placeholder,
    placeholder_id,
)


@pytest.fixture
def resolver(settings, http):
    return LicenseResolver(LicenseAuthorityClient(settings, http))


class TestPlaceholder:
    def test_requires_key(self):
        assert build_placeholder(LicenseReference(id="lic-1")) is None

    def test_deterministic_id(self):
        first = build_placeholder(LicenseReference(key="KEY-1"))
        second = build_placeholder(LicenseReference(key="KEY-1"))
        assert first.id == second.id == placeholder_id("KEY-1")
        assert first.id.startswith("meta_")

    def test_keeps_reference_id(self):
        assert build_placeholder(LicenseReference(id="lic-1", key="KEY-1")).id == "lic-1"

    def test_shape(self):
        placeholder = build_placeholder(LicenseReference(key="KEY-1"))
        assert placeholder.status == "unknown"
        assert placeholder.key == "KEY-1"
        assert placeholder.expiry is None
        assert placeholder.max_machines == 0
        assert placeholder.machines == []


class TestResolve:
    async def test_by_id_with_machines(self, resolver, upstream):
        upstream.add_license("lic-1", "KEY-1")
        upstream.add_machine("lic-1", "machine-1", "fp-1")

        license = await resolver.resolve(LicenseReference(id="lic-1", key="KEY-1"))

        assert license.id == "lic-1"
        assert license.status == "ACTIVE"
        assert [m.fingerprint for m in license.machines] == ["fp-1"]

    async def test_falls_back_to_key_when_authority_errors(self, resolver, upstream):
        upstream.add_license("lic-1", "KEY-1", status="ACTIVE")
        upstream.add_machine("lic-1", "machine-1", "fp-1")
        upstream.error_paths.add("/v1/licenses/lic-1")

        license = await resolver.resolve(LicenseReference(id="lic-1", key="KEY-1"))

        assert license.id == "lic-1"
        assert license.status == "active"
        assert license.machines == []

    async def test_falls_back_to_key_when_id_unknown(self, resolver, upstream):
        upstream.add_license("lic-real", "KEY-1", status="EXPIRED")
        license = await resolver.resolve(LicenseReference(id="lic-stale", key="KEY-1"))
        assert license.id == "lic-real"
        assert license.status == "expired"

    async def test_key_only(self, resolver, upstream):
        upstream.add_license("lic-1", "KEY-1")
        license = await resolver.resolve(LicenseReference(key="KEY-1"))
        assert license.id == "lic-1"
        assert license.status == "active"

    async def test_placeholder_when_authority_down(self, resolver, upstream):
        upstream.down_hosts.add("authority.test")
        license = await resolver.resolve(LicenseReference(key="KEY-1"))
        assert license.status == "unknown"
        assert license.key == "KEY-1"
        assert license.id == placeholder_id("KEY-1")

    async def test_placeholder_when_key_unknown(self, resolver):
        license = await resolver.resolve(LicenseReference(key="KEY-UNKNOWN"))
        assert license.status == "unknown"

    async def test_unresolvable_id_only(self, resolver, upstream):
        upstream.down_hosts.add("authority.test")
        assert await resolver.resolve(LicenseReference(id="lic-1")) is None


class TestResolveAll:
    async def test_failures_do_not_abort_siblings(self, resolver, upstream):
        upstream.add_license("lic-1", "KEY-1")
        upstream.add_license("lic-2", "KEY-2")
        upstream.error_paths.add("/v1/licenses/lic-2")

        licenses = await resolver.resolve_all([
            LicenseReference(id="lic-1"),
            LicenseReference(id="lic-2"),
            LicenseReference(key="KEY-3"),
        ])

        assert [lic.id for lic in licenses] == ["lic-1", placeholder_id("KEY-3")]

    async def test_runs_concurrently(self):
        class SlowAuthority:
            def __init__(self):
                self.in_flight = 0
                self.peak = 0

            async def get_license_with_machines(self, license_id):
                self.in_flight += 1
                self.peak = max(self.peak, self.in_flight)
                await asyncio.sleep(0.01)
                self.in_flight -= 1
                return LicenseDetail(id=license_id, key="", status="active")

        authority = SlowAuthority()
        licenses = await LicenseResolver(authority).resolve_all(
            [LicenseReference(id=f"lic-{i}") for i in range(5)]
        )
        assert len(licenses) == 5
        assert authority.peak == 5

    async def test_fake_authority_errors_absorbed(self):
        class BrokenAuthority:
            async def get_license_with_machines(self, license_id):
                raise AuthorityUnavailableError()

            async def validate_key(self, key):
                raise AuthorityUnavailableError()

        licenses = await LicenseResolver(BrokenAuthority()).resolve_all([LicenseReference(id="lic-1", key="K")])
        assert [lic.status for lic in licenses] == ["unknown"]


class TestResolveCustomerLicenses:
    async def test_anonymous(self, resolver):
        result = await resolver.resolve_customer_licenses(None, [])
        assert result.authenticated is False
        assert result.licenses == []

    async def test_customer_without_orders(self, resolver):
        result = await resolver.resolve_customer_licenses(CommerceCustomer(id="cus_1"), [])
        assert result.authenticated is True
        assert result.licenses == []

    async def test_authenticated_even_when_lookups_fail(self, resolver, upstream):
        upstream.down_hosts.add("authority.test")
        orders = [CommerceOrder(id="o1", metadata={"licenses": [{"license_id": "lic-1"}]})]
        result = await resolver.resolve_customer_licenses(CommerceCustomer(id="cus_1"), orders)
        assert result.authenticated is True
        assert result.licenses == []


class TestEntitlementService:
    async def test_resolves_from_orders(self, settings, http, upstream, session_token):
        upstream.add_customer(session_token, "cus_1")
        upstream.add_order(session_token, {"licenses": [{"license_id": "lic-1", "license_key": "KEY-1"}]})
        upstream.add_license("lic-1", "KEY-1")
        service = EntitlementService(
            CommerceClient(settings, http),
            LicenseResolver(LicenseAuthorityClient(settings, http)),
        )

        result = await service.resolve_entitlements(CommerceCustomer(id="cus_1", session_token=session_token))

        assert result.authenticated is True
        assert [lic.id for lic in result.licenses] == ["lic-1"]

    async def test_anonymous(self, settings, http):
        service = EntitlementService(
            CommerceClient(settings, http),
            LicenseResolver(LicenseAuthorityClient(settings, http)),
        )
        assert (await service.resolve_entitlements(None)).authenticated is False
