from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from plotpilot.core.errors import StoreTimeout
from plotpilot.infra.logging import log_event
from plotpilot.store.contracts import Property, Task

T = TypeVar("T")


class PropertyStore:
    """
    Async domain store interface used by the tool handlers.

    Lookups return None on a miss; "not found" is never an exception.
    Implementations return copies so callers cannot mutate stored state.
    """

    async def list_all(self) -> List[Property]:
        raise NotImplementedError

    async def get_by_id(self, property_id: str) -> Optional[Property]:
        raise NotImplementedError

    async def get_by_name(self, name: str) -> Optional[Property]:
        raise NotImplementedError

    async def create(self, data: Dict[str, Any]) -> Property:
        raise NotImplementedError

    async def update(self, property_id: str, partial: Dict[str, Any]) -> Optional[Property]:
        raise NotImplementedError

    async def create_task(self, description: str) -> Task:
        raise NotImplementedError


class BoundedStore(PropertyStore):
    """
    Wraps another store and bounds every call with a timeout.

    A call that overruns is cancelled and then awaited until it settles, so
    no write is still in flight when the turn ends. If the inner store could
    not stop a write that had already committed, that result is returned;
    otherwise StoreTimeout is raised and nothing was written.
    """

    def __init__(self, inner: PropertyStore, timeout: float) -> None:
        self.inner = inner
        self.timeout = timeout

    async def _bounded(self, op: str, aw: Awaitable[T]) -> T:
        call = asyncio.ensure_future(aw)
        try:
            done, _ = await asyncio.wait({call}, timeout=self.timeout)
        except asyncio.CancelledError:
            call.cancel()
            raise
        if call in done:
            return call.result()

        log_event("store_timeout", level="error", op=op, timeout=self.timeout)
        call.cancel()
        await asyncio.wait({call})

        if not call.cancelled() and call.exception() is None:
            log_event("store_call_settled_late", level="warning", op=op)
            return call.result()

        cause = None if call.cancelled() else call.exception()
        raise StoreTimeout(f"Store call {op} exceeded {self.timeout}s", cause) from cause

    async def list_all(self) -> List[Property]:
        return await self._bounded("list_all", self.inner.list_all())

    async def get_by_id(self, property_id: str) -> Optional[Property]:
        return await self._bounded("get_by_id", self.inner.get_by_id(property_id))

    async def get_by_name(self, name: str) -> Optional[Property]:
        return await self._bounded("get_by_name", self.inner.get_by_name(name))

    async def create(self, data: Dict[str, Any]) -> Property:
        return await self._bounded("create", self.inner.create(data))

    async def update(self, property_id: str, partial: Dict[str, Any]) -> Optional[Property]:
        return await self._bounded("update", self.inner.update(property_id, partial))

    async def create_task(self, description: str) -> Task:
        return await self._bounded("create_task", self.inner.create_task(description))
