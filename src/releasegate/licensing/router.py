"""Account license API router."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from releasegate.commerce.models import CommerceCustomer
from releasegate.common.exceptions import ReleasegateError, UnauthenticatedError
from releasegate.common.security import current_customer, require_customer
from releasegate.licensing.schemas import LicenseResponse, LicensesResponse, MachineRemovedResponse

router = APIRouter()


def _get_entitlements():
    from releasegate.deps import get_entitlement_service
    return get_entitlement_service()


def _get_activation():
    from releasegate.deps import get_activation_service
    return get_activation_service()


@router.get("/account/licenses", response_model=LicensesResponse)
async def list_licenses(customer: Optional[CommerceCustomer] = Depends(current_customer)):
    resolved = await _get_entitlements().resolve_entitlements(customer)
    if not resolved.authenticated:
        err = UnauthenticatedError()
        raise HTTPException(status_code=err.http_status, detail=err.detail())
    return LicensesResponse(
        authenticated=True,
        licenses=[LicenseResponse.from_detail(lic) for lic in resolved.licenses],
    )


@router.delete(
    "/account/licenses/{license_id}/machines/{machine_id}",
    response_model=MachineRemovedResponse,
)
async def remove_machine(
    license_id: str,
    machine_id: str,
    customer: CommerceCustomer = Depends(require_customer),
):
    svc = _get_activation()
    try:
        removed = await svc.deactivate_for_customer(customer, license_id, machine_id)
    except ReleasegateError as e:
        raise HTTPException(status_code=e.http_status, detail=e.detail())
    if not removed:
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to deactivate machine", "code": "DEACTIVATION_FAILED"},
        )
    return MachineRemovedResponse(success=True)
