from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from plotpilot.core.errors import (
    AssistantError,
    RegistryFrozenError,
    ToolOutputError,
    UnknownToolError,
)
from plotpilot.core.schema import validate
from plotpilot.core.tool_schemas import ToolDefinition, ToolRequest, ToolResult
from plotpilot.infra.logging import log_event


class ToolRegistry:
    """
    Reason:
    - Maintain an allowlist of tools, built once at startup.
    Benefit:
    - Prevents accidental/unsafe tool execution; the frozen table is
      shared by concurrent turns without locking.
    """

    def __init__(self) -> None:
        self._tools: Mapping[str, ToolDefinition] = {}
        self._frozen = False

    def register(self, definition: ToolDefinition) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"Registry is frozen; cannot register {definition.name}")
        if definition.name in self._tools:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._tools[definition.name] = definition

    def freeze(self) -> "ToolRegistry":
        if not self._frozen:
            self._tools = MappingProxyType(dict(self._tools))
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def has(self, name: str) -> bool:
        return name in self._tools

    def lookup(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def list(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def declarations(self) -> List[Dict[str, Any]]:
        return [tool.declaration() for tool in self._tools.values()]

    async def run(self, req: ToolRequest, *, turn_id: Optional[str] = None) -> ToolResult:
        """
        Lookup -> validate args -> execute -> validate result.

        Bad arguments and handler failures come back as ToolResult(ok=False)
        so the model can react. An unknown tool, a malformed handler result
        or a store timeout raise: those end the turn.
        """
        tool_name = req.tool_name

        try:
            tool = self.lookup(tool_name)
        except UnknownToolError:
            log_event("tool_unknown", level="warning", turn_id=turn_id, tool_name=tool_name)
            raise

        # 1) Input validation
        checked = validate(tool.input_schema, req.args)
        if not checked.ok:
            log_event(
                "tool_input_invalid",
                level="warning",
                turn_id=turn_id,
                tool_name=tool_name,
                errors=checked.errors,
            )
            return ToolResult(
                tool_name=tool_name,
                call_id=req.call_id,
                ok=False,
                error="Invalid arguments: " + "; ".join(checked.errors),
            )

        log_event(
            "tool_call_start",
            turn_id=turn_id,
            tool_name=tool_name,
            args_keys=sorted(checked.value.keys()),
        )

        # 2) Execute tool
        try:
            out = await tool.handler(**checked.value)
        except AssistantError:
            raise
        except Exception as e:
            log_event(
                "tool_call_error",
                level="warning",
                turn_id=turn_id,
                tool_name=tool_name,
                error=f"{type(e).__name__}: {e}",
            )
            return ToolResult(
                tool_name=tool_name,
                call_id=req.call_id,
                ok=False,
                error=f"Tool error: {type(e).__name__}: {e}",
            )

        # 3) Output validation
        checked_out = validate(tool.output_schema, out)
        if not checked_out.ok:
            log_event(
                "tool_output_invalid",
                level="error",
                turn_id=turn_id,
                tool_name=tool_name,
                errors=checked_out.errors,
            )
            raise ToolOutputError(tool_name, checked_out.errors)

        log_event("tool_call_end", turn_id=turn_id, tool_name=tool_name, ok=True)
        return ToolResult(tool_name=tool_name, call_id=req.call_id, ok=True, data=checked_out.value)
