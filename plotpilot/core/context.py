from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from plotpilot.config import Settings, load_settings
from plotpilot.core.prompt_loader import load_prompt
from plotpilot.core.tool_router import ToolRegistry
from plotpilot.infra.logging import log_event
from plotpilot.llm.client import LLMClient, OpenAIClient
from plotpilot.store.base import BoundedStore, PropertyStore
from plotpilot.store.memory import InMemoryPropertyStore, demo_properties
from plotpilot.store.sqlite import SqlitePropertyStore
from plotpilot.tools.property_tools import build_property_tools
from plotpilot.tools.task_tools import build_task_tools


@dataclass(frozen=True)
class AssistantContext:
    """
    Everything one assistant turn needs, built once at process start.

    Passed explicitly into every call; there are no module-level clients.
    """

    registry: ToolRegistry
    llm: LLMClient
    system_prompt: str
    max_steps: int = 4
    # deadline for one model step, client retries included
    llm_timeout: float = 30.0


def build_registry(store: PropertyStore) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in build_property_tools(store) + build_task_tools(store):
        registry.register(tool)
    return registry.freeze()


def build_system_prompt(registry: ToolRegistry, *, version: str = "v1") -> str:
    tool_names = "\n".join(f"- {tool.name}: {tool.description}" for tool in registry.list())
    return load_prompt("assistant", version=version, tool_names=tool_names)


def make_store(settings: Settings) -> PropertyStore:
    if settings.store_backend == "sqlite":
        store = SqlitePropertyStore(settings.db_path)
        if settings.seed_demo_data:
            store.seed(demo_properties())
        return store
    return InMemoryPropertyStore(demo_properties() if settings.seed_demo_data else [])


def build_context(
    settings: Optional[Settings] = None,
    *,
    llm: Optional[LLMClient] = None,
    store: Optional[PropertyStore] = None,
) -> AssistantContext:
    settings = settings or load_settings()
    store = store or make_store(settings)

    registry = build_registry(BoundedStore(store, settings.store_timeout))
    ctx = AssistantContext(
        registry=registry,
        llm=llm or OpenAIClient.from_settings(settings),
        system_prompt=build_system_prompt(registry, version=settings.prompt_version),
        max_steps=settings.max_steps,
        llm_timeout=settings.llm_step_deadline,
    )

    log_event(
        "assistant_context_ready",
        tools=[t.name for t in registry.list()],
        store=settings.store_backend,
        model=getattr(ctx.llm, "model", None),
        max_steps=ctx.max_steps,
    )
    return ctx
