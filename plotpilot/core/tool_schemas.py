from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from plotpilot.core.schema import FieldSpec, describe_fields, object_schema, string_field, to_json_schema

ToolHandler = Callable[..., Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    Reason:
    - Everything the registry needs to expose and dispatch one tool.
    Benefit:
    - Frozen: schemas cannot drift after registration.
    """

    name: str
    description: str
    input_schema: FieldSpec
    output_schema: FieldSpec
    handler: ToolHandler

    def declaration(self) -> Dict[str, Any]:
        """Provider-neutral declaration: the wire contract shown to the model."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": to_json_schema(self.input_schema),
            "output_schema": to_json_schema(self.output_schema),
            "returns": describe_fields(self.output_schema),
        }


class ToolRequest(BaseModel):
    """
    Reason:
    - Single, strict format for model-to-system tool calls.
    Benefit:
    - The router validates tool calls deterministically; args stay untrusted until then.
    """
    tool_name: str = Field(description="Name of the tool to execute")
    args: Dict[str, Any] = Field(default_factory=dict, description="Raw model-produced arguments")
    call_id: Optional[str] = Field(default=None, description="Backend correlation id")


class ToolResult(BaseModel):
    """
    Reason:
    - Standardize tool outputs so the model always gets the same envelope back.
    Benefit:
    - A failed call is data the model can react to, not a crash.
    """
    tool_name: str
    ok: bool
    call_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class FinalAnswer(BaseModel):
    kind: Literal["final"] = "final"
    text: str


class ToolCalls(BaseModel):
    kind: Literal["tool_calls"] = "tool_calls"
    calls: List[ToolRequest] = Field(min_length=1)


AssistantTurn = Annotated[Union[FinalAnswer, ToolCalls], Field(discriminator="kind")]


class TurnOutcome(BaseModel):
    """
    Internal result of one assistant turn.

    The transport boundary is the only place that turns a failed outcome
    into the public fallback string.
    """
    turn_id: str
    ok: bool
    response: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    steps: int = 0
    tool_calls: List[str] = Field(default_factory=list)


FINAL_ANSWER_SCHEMA = object_schema(
    {
        "assistantResponse": string_field(
            "The response generated by the AI assistant.", min_length=1
        ),
    }
)
