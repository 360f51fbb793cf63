import asyncio
import inspect
import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

from plotpilot.core.context import AssistantContext, build_registry, build_system_prompt
from plotpilot.core.tool_router import ToolRegistry
from plotpilot.llm.client import LLMClient, parse_turn
from plotpilot.store.base import BoundedStore
from plotpilot.store.contracts import Property
from plotpilot.store.memory import InMemoryPropertyStore

Step = Union[Dict[str, Any], Exception, Callable[[List[Dict[str, Any]]], Any]]


class ScriptedLLM(LLMClient):
    """
    Fake backend that plays back one scripted step per model call.

    A step is a turn dict, an exception to raise, or a callable receiving the
    conversation so far and returning a turn dict (sync or async).
    """

    def __init__(self, steps: Sequence[Step], *, repeat_last: bool = False) -> None:
        self.steps = list(steps)
        self.repeat_last = repeat_last
        self.calls: List[List[Dict[str, Any]]] = []
        self.seen_tools: List[Dict[str, Any]] = []

    async def complete(self, messages, tools):
        self.calls.append([dict(m) for m in messages])
        self.seen_tools = list(tools)

        index = len(self.calls) - 1
        if index >= len(self.steps):
            if not self.repeat_last:
                raise AssertionError("ScriptedLLM ran out of steps")
            index = len(self.steps) - 1

        step = self.steps[index]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            step = step(messages)
            if inspect.isawaitable(step):
                step = await step
        return parse_turn(step)


class SlowLLM(LLMClient):
    async def complete(self, messages, tools):
        await asyncio.sleep(5)
        return parse_turn({"kind": "final", "text": "too late"})


def final(text: str) -> Dict[str, Any]:
    return {"kind": "final", "text": text}


def call(tool_name: str, call_id: Optional[str] = None, **args: Any) -> Dict[str, Any]:
    return {"kind": "tool_calls", "calls": [{"tool_name": tool_name, "args": args, "call_id": call_id}]}


def tool_payloads(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Decoded content of every tool-result message in the conversation."""
    return [json.loads(m["content"]) for m in messages if m["role"] == "tool"]


def make_context(
    llm: LLMClient,
    store=None,
    *,
    registry: Optional[ToolRegistry] = None,
    max_steps: int = 4,
    llm_timeout: float = 1.0,
    store_timeout: float = 1.0,
) -> AssistantContext:
    if registry is None:
        store = store if store is not None else InMemoryPropertyStore()
        registry = build_registry(BoundedStore(store, store_timeout))
    return AssistantContext(
        registry=registry,
        llm=llm,
        system_prompt=build_system_prompt(registry),
        max_steps=max_steps,
        llm_timeout=llm_timeout,
    )


@pytest.fixture
def lahore_karachi_store() -> InMemoryPropertyStore:
    return InMemoryPropertyStore(
        [
            Property(
                id="p-bahria",
                name="Bahria Corner Plot",
                address="Plot 5, Bahria Town Karachi",
                created_at="2024-01-01T00:00:00Z",
                property_type="Residential Plot",
                is_sold_on_installment=True,
            ),
            Property(
                id="p-gulberg",
                name="Gulberg Flat",
                address="12 Main Blvd, Gulberg Lahore",
                created_at="2024-01-02T00:00:00Z",
                property_type="Apartment",
                is_rented=True,
            ),
            Property(
                id="p-dha",
                name="DHA House",
                address="123 DHA Lahore",
                created_at="2024-01-03T00:00:00Z",
                property_type="House",
            ),
        ]
    )
