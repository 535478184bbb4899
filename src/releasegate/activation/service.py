"""Activation service: machine activation, deactivation, seat status.

Seat accounting lives entirely in the license authority; nothing is counted
or cached here.
"""

from typing import Any, Optional

from releasegate.commerce.models import CommerceCustomer
from releasegate.common.exceptions import ForbiddenError, LicenseNotFoundError
from releasegate.common.logging import get_logger
from releasegate.licensing.authority import LicenseAuthorityClient
from releasegate.licensing.models import LicenseDetail, MachineActivation
from releasegate.licensing.references import extract_license_ids
from releasegate.licensing.resolver import EntitlementService

logger = get_logger("activation")


class ActivationService:
    """Machine activation operations."""

    def __init__(self, authority: LicenseAuthorityClient, entitlements: Optional[EntitlementService] = None):
        self.authority = authority
        self.entitlements = entitlements

    async def activate(
        self,
        license_id: str,
        fingerprint: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[MachineActivation]:
        """Bind a client instance to a license. None when the authority refuses."""
        activation = await self.authority.activate_machine(license_id, fingerprint, metadata or {})
        if activation is not None:
            logger.info("Machine activated", extra={"license_id": license_id, "machine_id": activation.id})
        return activation

    async def license_id_for_key(self, key: str) -> Optional[str]:
        validation = await self.authority.validate_key(key)
        if validation.license is None:
            return None
        return validation.license.id

    async def _require_license_id(self, key: str) -> str:
        license_id = await self.license_id_for_key(key)
        if license_id is None:
            raise LicenseNotFoundError("License key not found")
        return license_id

    async def deactivate(self, machine_id: str) -> bool:
        result = await self.authority.deactivate_machine(machine_id)
        if result:
            logger.info("Machine deactivated", extra={"machine_id": machine_id})
        return result

    async def status(self, license_id: str) -> LicenseDetail:
        """License with its activated machines, for seat usage display."""
        license = await self.authority.get_license_with_machines(license_id)
        if license is None:
            raise LicenseNotFoundError()
        return license

    async def _deactivate_on_license(self, license_id: str, machine_id: str) -> bool:
        machines = await self.authority.get_license_machines(license_id)
        if not any(m.id == machine_id for m in machines):
            raise ForbiddenError("Machine does not belong to this license")
        return await self.deactivate(machine_id)

    # ── Key-based plugin operations ──
    # Holding the license key is the proof of possession; every operation
    # acts only on the license the key resolves to.

    async def activate_for_key(
        self,
        key: str,
        fingerprint: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[MachineActivation]:
        license_id = await self._require_license_id(key)
        return await self.activate(license_id, fingerprint, metadata)

    async def deactivate_for_key(self, key: str, machine_id: str) -> bool:
        license_id = await self._require_license_id(key)
        return await self._deactivate_on_license(license_id, machine_id)

    async def status_for_key(self, key: str) -> LicenseDetail:
        return await self.status(await self._require_license_id(key))

    # ── Account operations ──

    async def deactivate_for_customer(
        self,
        customer: CommerceCustomer,
        license_id: str,
        machine_id: str,
    ) -> bool:
        """Deactivate a machine after checking the customer owns the license
        and the machine belongs to it."""
        if self.entitlements is None:
            raise RuntimeError("ActivationService needs an EntitlementService for customer operations")

        orders = await self.entitlements.customer_orders(customer)
        if license_id not in extract_license_ids(orders):
            raise ForbiddenError()

        return await self._deactivate_on_license(license_id, machine_id)
