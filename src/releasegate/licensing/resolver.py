"""Resolve license references into license records.

Each reference goes through: lookup by id (with machines), then
validate-by-key, then a placeholder built from the key. Authority failures
are logged and absorbed per reference.
"""

import asyncio
import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from releasegate.commerce.client import CommerceClient
from releasegate.commerce.models import CommerceCustomer, CommerceOrder
from releasegate.common.exceptions import AuthorityUnavailableError
from releasegate.common.logging import get_logger
from releasegate.licensing.authority import LicenseAuthorityClient
from releasegate.licensing.models import LicenseDetail
from releasegate.licensing.references import LicenseReference, extract_license_references

logger = get_logger("licensing.resolver")

UNKNOWN_STATUS = "unknown"


@dataclass
class ResolvedLicenses:
    authenticated: bool
    licenses: list[LicenseDetail] = field(default_factory=list)


def placeholder_id(key: str) -> str:
    """Stable id for a license known only by its key."""
    encoded = base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii").rstrip("=")
    return f"meta_{encoded}"


def build_placeholder(reference: LicenseReference) -> Optional[LicenseDetail]:
    """Minimal record that still surfaces the key when the authority can't help."""
    if not reference.key:
        return None
    return LicenseDetail(
        id=reference.id or placeholder_id(reference.key),
        key=reference.key,
        status=UNKNOWN_STATUS,
        expiry=None,
        max_machines=0,
        machines=[],
        metadata={},
        policy_id=UNKNOWN_STATUS,
        created_at=datetime.now(timezone.utc).isoformat(),
    )


class LicenseResolver:
    """Turns references into ``LicenseDetail`` records via the license authority."""

    def __init__(self, authority: LicenseAuthorityClient):
        self.authority = authority

    async def resolve(self, reference: LicenseReference) -> Optional[LicenseDetail]:
        if reference.id:
            try:
                detail = await self.authority.get_license_with_machines(reference.id)
                if detail is not None:
                    return detail
            except AuthorityUnavailableError as e:
                logger.error("Failed to fetch license %s: %s", reference.id, e.message,
                             extra={"license_id": reference.id})

        if reference.key:
            try:
                validation = await self.authority.validate_key(reference.key)
                if validation.license is not None:
                    license = validation.license
                    license.status = license.status.lower()
                    license.machines = []
                    return license
            except AuthorityUnavailableError as e:
                logger.error("Failed to validate license key: %s", e.message)

        return build_placeholder(reference)

    async def resolve_all(self, references: list[LicenseReference]) -> list[LicenseDetail]:
        """Resolve references concurrently; unresolvable ones are dropped."""
        results = await asyncio.gather(*(self.resolve(ref) for ref in references))
        return [license for license in results if license is not None]

    async def resolve_customer_licenses(
        self,
        customer: Optional[CommerceCustomer],
        orders: list[CommerceOrder],
    ) -> ResolvedLicenses:
        if customer is None:
            return ResolvedLicenses(authenticated=False)
        references = extract_license_references(orders)
        return ResolvedLicenses(authenticated=True, licenses=await self.resolve_all(references))


class EntitlementService:
    """Resolves the licenses owned by the signed-in customer."""

    def __init__(self, commerce: CommerceClient, resolver: LicenseResolver):
        self.commerce = commerce
        self.resolver = resolver

    async def customer_orders(self, customer: CommerceCustomer) -> list[CommerceOrder]:
        return await self.commerce.list_orders(customer.session_token)

    async def resolve_entitlements(self, customer: Optional[CommerceCustomer]) -> ResolvedLicenses:
        if customer is None:
            return ResolvedLicenses(authenticated=False)
        orders = await self.customer_orders(customer)
        return await self.resolver.resolve_customer_licenses(customer, orders)
