"""Extract license references from commerce order metadata.

Order metadata has carried license information under several field names
over time. Each concept is read through an ordered list of accessor names;
the first non-empty one wins, so a new legacy spelling is a one-line change.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from releasegate.commerce.models import CommerceOrder

ID_FIELDS = ("license_id", "licenseId", "id")
KEY_FIELDS = ("license_key", "licenseKey", "key")

# When the metadata map itself carries a reference, plain ``id``/``key`` belong
# to the order, not to a license.
DIRECT_ID_FIELDS = ("license_id", "licenseId")
DIRECT_KEY_FIELDS = ("license_key", "licenseKey")

# Metadata keys whose value holds one or more license entries.
CONTAINER_FIELDS = ("licenses", "license", "license_data", "licenseData")


@dataclass
class LicenseReference:
    id: Optional[str] = None
    key: Optional[str] = None


def _normalize(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _first(entry: dict[str, Any], fields: Iterable[str]) -> Optional[str]:
    for name in fields:
        value = _normalize(entry.get(name))
        if value is not None:
            return value
    return None


def reference_from_entry(
    entry: dict[str, Any],
    id_fields: Iterable[str] = ID_FIELDS,
    key_fields: Iterable[str] = KEY_FIELDS,
) -> Optional[LicenseReference]:
    """Read one reference from a raw entry, or None if it has neither half."""
    license_id = _first(entry, id_fields)
    key = _first(entry, key_fields)
    if license_id is None and key is None:
        return None
    return LicenseReference(id=license_id, key=key)


def _coerce_entries(value: Any) -> list[dict[str, Any]]:
    """Accept a list of maps, a single map, or a JSON string of either."""
    if isinstance(value, str) and value.strip():
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if isinstance(value, list):
        return [entry for entry in value if isinstance(entry, dict) and entry]
    if isinstance(value, dict):
        return [value]
    return []


def _upsert(references: list[LicenseReference], reference: LicenseReference) -> None:
    for existing in references:
        same_id = reference.id is not None and existing.id == reference.id
        same_key = reference.key is not None and existing.key == reference.key
        if same_id or same_key:
            if existing.id is None:
                existing.id = reference.id
            if existing.key is None:
                existing.key = reference.key
            return
    references.append(reference)


def _collect_from_metadata(metadata: Optional[dict[str, Any]], references: list[LicenseReference]) -> None:
    if not metadata:
        return
    for container in CONTAINER_FIELDS:
        for entry in _coerce_entries(metadata.get(container)):
            reference = reference_from_entry(entry)
            if reference is not None:
                _upsert(references, reference)

    direct = reference_from_entry(metadata, DIRECT_ID_FIELDS, DIRECT_KEY_FIELDS)
    if direct is not None:
        _upsert(references, direct)


def extract_license_references(orders: Iterable[CommerceOrder]) -> list[LicenseReference]:
    """Deduplicated references across all orders, in first-seen order."""
    references: list[LicenseReference] = []
    for order in orders:
        _collect_from_metadata(order.metadata, references)
        for item in order.items:
            _collect_from_metadata(item.metadata, references)
    return references


def extract_license_ids(orders: Iterable[CommerceOrder]) -> list[str]:
    ids = (ref.id for ref in extract_license_references(orders) if ref.id)
    return list(dict.fromkeys(ids))
