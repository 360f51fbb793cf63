from __future__ import annotations

from typing import List, Optional


class AssistantError(Exception):
    """Base class for every failure the orchestrator knows how to degrade."""


class ToolValidationError(AssistantError):
    """Raised when a tool's arguments do not match its input schema."""

    def __init__(self, tool_name: str, errors: List[str]) -> None:
        self.tool_name = tool_name
        self.errors = list(errors)
        super().__init__(f"{tool_name}: " + "; ".join(self.errors))


class ToolOutputError(ToolValidationError):
    """Raised when a handler returns data that does not match its output schema."""


class BackendError(AssistantError):
    """LLM backend unreachable, malformed reply, or internal failure."""

    def __init__(self, message: str, original_exc: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc


class StoreTimeout(BackendError):
    """A domain store call did not finish within its time bound."""


class StepLimitExceeded(BackendError):
    """The model kept requesting tools past the per-turn step cap."""


class UnknownToolError(AssistantError):
    """The model asked for a tool that is not in the registry."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class RegistryFrozenError(RuntimeError):
    """Raised when a tool is registered after startup."""
