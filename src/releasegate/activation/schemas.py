"""Pydantic schemas for activation endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from releasegate.licensing.models import LicenseDetail
from releasegate.licensing.schemas import MachineResponse


class ActivateRequest(BaseModel):
    key: str = Field(min_length=1)
    fingerprint: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivateResponse(BaseModel):
    id: str
    fingerprint: str


class DeactivateRequest(BaseModel):
    key: str = Field(min_length=1)
    machine_id: str = Field(min_length=1)


class DeactivateResponse(BaseModel):
    success: bool


class LicenseStatusResponse(BaseModel):
    """Seat usage for the plugin. The caller already holds the key, so it is not echoed."""

    id: str
    status: str
    expiry: Optional[str] = None
    max_machines: int = 0
    machines: list[MachineResponse] = Field(default_factory=list)

    @classmethod
    def from_detail(cls, license: LicenseDetail) -> "LicenseStatusResponse":
        data = license.to_dict()
        return cls(
            id=data["id"],
            status=data["status"],
            expiry=data["expiry"],
            max_machines=data["max_machines"],
            machines=data["machines"],
        )
