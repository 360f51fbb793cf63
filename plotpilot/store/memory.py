from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Optional

from plotpilot.infra.ids import new_property_id, new_task_id
from plotpilot.store.base import PropertyStore
from plotpilot.store.contracts import Property, Task, now_iso_utc


def demo_properties() -> List[Property]:
    """Seed data for local runs and the CLI demo."""
    return [
        Property(
            id="prop1",
            name="Sunset Villa",
            address="123 Sunnyside Ave, DHA Phase 5 Lahore",
            created_at="2023-01-02T09:00:00Z",
            property_type="House",
            plots=[
                {"id": "p1", "plotNumber": "101", "buyerName": "John Doe", "price": 150000},
                {"id": "p2", "plotNumber": "102", "buyerName": "Jane Smith", "price": 120000},
            ],
        ),
        Property(
            id="prop2",
            name="Greenwood Heights",
            address="456 Forest Ln, Bahria Town Karachi",
            created_at="2023-01-15T09:00:00Z",
            property_type="Apartment",
            is_sold_on_installment=True,
            extra={"purchaseDate": "2023-01-15T00:00:00Z", "totalInstallmentPrice": 250000},
        ),
        Property(
            id="prop3",
            name="Lakeside Estate",
            address="789 Lake Rd, Gulberg Lahore",
            created_at="2023-02-01T09:00:00Z",
            property_type="Residential Plot",
            is_rented=True,
            extra={"tenantName": "Usman Ali", "rentAmount": 85000, "rentFrequency": "monthly"},
        ),
    ]


class InMemoryPropertyStore(PropertyStore):
    """
    Dict-backed store. Each coroutine runs to completion without awaiting,
    so concurrent writers never interleave inside one operation.
    """

    def __init__(self, properties: Optional[Iterable[Property]] = None) -> None:
        self._properties: Dict[str, Property] = {p.id: p for p in (properties or [])}
        self._tasks: List[Task] = []

    async def list_all(self) -> List[Property]:
        return [copy.deepcopy(p) for p in self._properties.values()]

    async def get_by_id(self, property_id: str) -> Optional[Property]:
        found = self._properties.get(property_id)
        return copy.deepcopy(found) if found else None

    async def get_by_name(self, name: str) -> Optional[Property]:
        for p in self._properties.values():
            if p.name == name:
                return copy.deepcopy(p)
        return None

    async def create(self, data: Dict[str, Any]) -> Property:
        doc = dict(data)
        doc["id"] = new_property_id()
        doc["createdAt"] = now_iso_utc()
        prop = Property.from_dict(doc)
        self._properties[prop.id] = prop
        return copy.deepcopy(prop)

    async def update(self, property_id: str, partial: Dict[str, Any]) -> Optional[Property]:
        current = self._properties.get(property_id)
        if current is None:
            return None
        updated = current.with_updates(partial)
        self._properties[property_id] = updated
        return copy.deepcopy(updated)

    async def create_task(self, description: str) -> Task:
        task = Task(id=new_task_id(), description=description, created_at=now_iso_utc())
        self._tasks.append(task)
        return task

    async def list_tasks(self) -> List[Task]:
        return list(self._tasks)
