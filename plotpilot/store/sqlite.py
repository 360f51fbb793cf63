from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from plotpilot.infra import storage
from plotpilot.infra.ids import new_property_id, new_task_id
from plotpilot.store.base import PropertyStore
from plotpilot.store.contracts import Property, Task, now_iso_utc

T = TypeVar("T")


class SqlitePropertyStore(PropertyStore):
    """
    Document store on a local sqlite file: one JSON document per property.

    sqlite3 is blocking, so every call runs in a worker thread. Writes run
    in one transaction each and are never left running behind a cancelled
    caller: see `_write`.
    """

    def __init__(
        self, db_path: Path = storage.DEFAULT_DB_PATH, *, busy_timeout: float = storage.DEFAULT_BUSY_TIMEOUT
    ) -> None:
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        storage.init_db(self.db_path)

    def seed(self, properties: Iterable[Property]) -> int:
        """Startup-time insert of properties not stored yet; returns how many were added."""
        added = 0
        for prop in properties:
            if storage.load_property_doc(self.db_path, prop.id) is None:
                storage.save_property_doc(self.db_path, prop.to_dict())
                added += 1
        return added

    async def _write(self, fn: Callable[..., T], *args: Any) -> T:
        """
        Run one storage write in a worker thread.

        A thread cannot be interrupted, so on cancellation the worker is told
        to roll back and awaited. If it had already committed, its result is
        returned: the write happened and the caller should hear about it.
        Otherwise the cancellation propagates and nothing was written.
        """
        abort = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(fn, *args, timeout=self.busy_timeout, abort=abort)
        )
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            abort.set()
            try:
                return await worker
            except storage.WriteAborted:
                pass
            raise

    async def list_all(self) -> List[Property]:
        docs = await asyncio.to_thread(storage.list_property_docs, self.db_path)
        return [Property.from_dict(d) for d in docs]

    async def get_by_id(self, property_id: str) -> Optional[Property]:
        doc = await asyncio.to_thread(storage.load_property_doc, self.db_path, property_id)
        return Property.from_dict(doc) if doc else None

    async def get_by_name(self, name: str) -> Optional[Property]:
        doc = await asyncio.to_thread(storage.find_property_doc_by_name, self.db_path, name)
        return Property.from_dict(doc) if doc else None

    async def create(self, data: Dict[str, Any]) -> Property:
        doc = dict(data)
        doc["id"] = new_property_id()
        doc["createdAt"] = now_iso_utc()
        prop = Property.from_dict(doc)
        await self._write(storage.save_property_doc, self.db_path, prop.to_dict())
        return prop

    async def update(self, property_id: str, partial: Dict[str, Any]) -> Optional[Property]:
        def merge(doc: Dict[str, Any]) -> Dict[str, Any]:
            return Property.from_dict(doc).with_updates(partial).to_dict()

        doc = await self._write(storage.update_property_doc, self.db_path, property_id, merge)
        return Property.from_dict(doc) if doc else None

    async def create_task(self, description: str) -> Task:
        task = Task(id=new_task_id(), description=description, created_at=now_iso_utc())
        await self._write(storage.save_task_doc, self.db_path, task.to_dict())
        return task

    async def list_tasks(self) -> List[Task]:
        docs = await asyncio.to_thread(storage.list_task_docs, self.db_path)
        return [Task.from_dict(d) for d in docs]
