"""License records as returned by the license authority.

Nothing here is persisted; records live for the duration of one request.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Returns None for missing or unparsable input.

    Naive values are taken as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class MachineDetail:
    """One activated seat on a license."""

    id: str
    fingerprint: str
    name: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "MachineDetail":
        attrs = resource.get("attributes") or {}
        return cls(
            id=str(resource["id"]),
            fingerprint=attrs.get("fingerprint") or "",
            name=attrs.get("name"),
            metadata=attrs.get("metadata") or {},
            created_at=attrs.get("created") or "",
        )


@dataclass
class LicenseDetail:
    """Canonical entitlement record for one license."""

    id: str
    key: str
    status: str
    expiry: Optional[str] = None
    max_machines: int = 0
    machines: list[MachineDetail] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    policy_id: str = ""
    created_at: str = ""

    @property
    def expires_at(self) -> Optional[datetime]:
        return parse_timestamp(self.expiry)

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "LicenseDetail":
        """Build from a JSON:API ``licenses`` resource object."""
        attrs = resource.get("attributes") or {}
        policy = ((resource.get("relationships") or {}).get("policy") or {}).get("data") or {}
        return cls(
            id=str(resource["id"]),
            key=attrs.get("key") or "",
            status=attrs.get("status") or "",
            expiry=attrs.get("expiry"),
            max_machines=int(attrs.get("maxMachines") or 0),
            machines=[],
            metadata=attrs.get("metadata") or {},
            policy_id=str(policy.get("id") or ""),
            created_at=attrs.get("created") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "status": self.status,
            "expiry": self.expiry,
            "max_machines": self.max_machines,
            "machines": [
                {
                    "id": m.id,
                    "fingerprint": m.fingerprint,
                    "name": m.name,
                    "metadata": m.metadata,
                    "created_at": m.created_at,
                }
                for m in self.machines
            ],
            "metadata": self.metadata,
            "policy_id": self.policy_id,
            "created_at": self.created_at,
        }


@dataclass
class KeyValidation:
    """Result of the authority's validate-key action."""

    valid: bool
    code: str = ""
    detail: str = ""
    license: Optional[LicenseDetail] = None


@dataclass
class MachineActivation:
    id: str
    fingerprint: str
