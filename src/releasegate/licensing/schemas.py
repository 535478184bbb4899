"""Pydantic schemas for license endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from releasegate.licensing.models import LicenseDetail


class MachineResponse(BaseModel):
    id: str
    fingerprint: str
    name: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str = ""


class LicenseResponse(BaseModel):
    id: str
    key: str
    status: str
    expiry: Optional[str] = None
    max_machines: int = 0
    machines: list[MachineResponse] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    policy_id: str = ""
    created_at: str = ""

    @classmethod
    def from_detail(cls, license: LicenseDetail) -> "LicenseResponse":
        return cls(**license.to_dict())


class LicensesResponse(BaseModel):
    authenticated: bool
    licenses: list[LicenseResponse]


class MachineRemovedResponse(BaseModel):
    success: bool
