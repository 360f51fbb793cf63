"""
The one entry point the presentation layer calls.

`chat_with_assistant` always returns a non-empty reply: malformed input,
backend outages and tool failures all collapse into FALLBACK_MESSAGE here,
and the details stay in the server log.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from plotpilot.core.assistant_flow import run_assistant_turn
from plotpilot.core.context import AssistantContext
from plotpilot.infra.logging import log_event

FALLBACK_MESSAGE = "I'm sorry, an error occurred. Please try rephrasing your request."


class ChatAssistantInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_message: str = Field(
        alias="userMessage", description="The message sent by the user to the AI assistant."
    )


class ChatAssistantOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assistant_response: str = Field(
        alias="assistantResponse",
        min_length=1,
        description="The response generated by the AI assistant.",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


async def chat_with_assistant(
    payload: Union[ChatAssistantInput, Mapping[str, Any]], *, ctx: AssistantContext
) -> ChatAssistantOutput:
    try:
        request = (
            payload
            if isinstance(payload, ChatAssistantInput)
            else ChatAssistantInput.model_validate(payload)
        )
    except ValidationError as e:
        log_event("chat_input_invalid", level="warning", errors=[err["msg"] for err in e.errors()])
        return ChatAssistantOutput(assistant_response=FALLBACK_MESSAGE)

    try:
        outcome = await run_assistant_turn(ctx, request.user_message)
    except Exception as e:
        # run_assistant_turn converts its own failures; this is the last guard
        log_event("chat_unexpected_error", level="error", error_type=type(e).__name__, error=str(e))
        return ChatAssistantOutput(assistant_response=FALLBACK_MESSAGE)

    text = outcome.response if outcome.ok else None
    if not text or not text.strip():
        return ChatAssistantOutput(assistant_response=FALLBACK_MESSAGE)
    return ChatAssistantOutput(assistant_response=text)
