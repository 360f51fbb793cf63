"""
contracts.py

Domain records the assistant reads and writes through the store.

Design goals:
- Frozen records; updates produce a new record
- Wire keys are camelCase (what the model and the UI see), attributes snake_case
- Unknown document fields survive round-trips in `extra`
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def now_iso_utc() -> str:
    """ISO-8601 timestamp in UTC with 'Z' suffix."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _require_non_empty(value: Any, field_name: str) -> str:
    if value is None:
        raise ValueError(f"{field_name} is required (got None)")
    s = str(value).strip()
    if not s:
        raise ValueError(f"{field_name} is required (got empty)")
    return s


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


# attribute name -> wire key
_PROPERTY_KEYS = {
    "id": "id",
    "name": "name",
    "address": "address",
    "created_at": "createdAt",
    "property_type": "propertyType",
    "plots": "plots",
    "is_sold_on_installment": "isSoldOnInstallment",
    "is_rented": "isRented",
}
_WIRE_TO_ATTR = {wire: attr for attr, wire in _PROPERTY_KEYS.items()}

# fields a partial update may not touch
IMMUTABLE_PROPERTY_KEYS = frozenset({"id", "createdAt"})


@dataclass(frozen=True)
class Property:
    id: str
    name: str
    address: str
    created_at: str
    property_type: Optional[str] = None
    plots: List[Dict[str, Any]] = field(default_factory=list)
    is_sold_on_installment: bool = False
    is_rented: bool = False

    # buyer/tenant details and anything else the CRUD screens store
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_non_empty(self.id, "id")
        _require_non_empty(self.name, "name")
        _require_non_empty(self.address, "address")

    @property
    def status(self) -> str:
        if self.is_sold_on_installment:
            return "Sold (Installment)"
        if self.is_rented:
            return "Rented"
        return "Available"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe document with camelCase keys; extra fields are merged back in."""
        d: Dict[str, Any] = copy.deepcopy(self.extra)
        for attr, wire in _PROPERTY_KEYS.items():
            d[wire] = copy.deepcopy(getattr(self, attr))
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Property":
        known = {attr: d[wire] for wire, attr in _WIRE_TO_ATTR.items() if wire in d}
        extra = {k: copy.deepcopy(v) for k, v in d.items() if k not in _WIRE_TO_ATTR}
        return Property(
            id=_require_non_empty(known.get("id"), "id"),
            name=_require_non_empty(known.get("name"), "name"),
            address=_require_non_empty(known.get("address"), "address"),
            created_at=known.get("created_at") or now_iso_utc(),
            property_type=_optional_str(known.get("property_type")),
            plots=list(known.get("plots") or []),
            is_sold_on_installment=bool(known.get("is_sold_on_installment", False)),
            is_rented=bool(known.get("is_rented", False)),
            extra=extra,
        )

    def with_updates(self, partial: Dict[str, Any]) -> "Property":
        """Apply a camelCase partial update. Identity fields are ignored."""
        changes: Dict[str, Any] = {}
        extra = copy.deepcopy(self.extra)
        for key, value in partial.items():
            if key in IMMUTABLE_PROPERTY_KEYS:
                continue
            attr = _WIRE_TO_ATTR.get(key)
            if attr is None:
                extra[key] = copy.deepcopy(value)
            else:
                changes[attr] = copy.deepcopy(value)
        return replace(self, extra=extra, **changes)


@dataclass(frozen=True)
class Task:
    id: str
    description: str
    created_at: str

    def __post_init__(self) -> None:
        _require_non_empty(self.id, "id")
        _require_non_empty(self.description, "description")

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "description": self.description, "createdAt": self.created_at}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Task":
        return Task(
            id=_require_non_empty(d.get("id"), "id"),
            description=_require_non_empty(d.get("description"), "description"),
            created_at=d.get("createdAt") or now_iso_utc(),
        )
