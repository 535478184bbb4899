"""Commerce records read from the store API."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class CommerceCustomer:
    """The signed-in customer, as reported by the store."""

    id: str
    email: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    # Session token the customer authenticated with; used as the last-resort
    # download token secret.
    session_token: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_payload(cls, data: dict[str, Any], session_token: Optional[str] = None) -> "CommerceCustomer":
        return cls(
            id=str(data["id"]),
            email=data.get("email") or "",
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            session_token=session_token,
        )


@dataclass
class CommerceOrderItem:
    id: str
    title: str = ""
    quantity: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "CommerceOrderItem":
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title") or "",
            quantity=int(data.get("quantity") or 0),
            metadata=data.get("metadata") or {},
        )


@dataclass
class CommerceOrder:
    id: str
    status: str = ""
    email: str = ""
    currency_code: str = ""
    total: float = 0
    items: list[CommerceOrderItem] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "CommerceOrder":
        return cls(
            id=str(data.get("id", "")),
            status=data.get("status") or "",
            email=data.get("email") or "",
            currency_code=data.get("currency_code") or "",
            total=data.get("total") or 0,
            items=[CommerceOrderItem.from_payload(i) for i in data.get("items") or []],
            metadata=data.get("metadata") or {},
        )
