import asyncio
from typing import List

from plotpilot.core.context import AssistantContext
from plotpilot.core.errors import (
    AssistantError,
    BackendError,
    StepLimitExceeded,
    ToolOutputError,
    UnknownToolError,
)
from plotpilot.core.schema import validate
from plotpilot.core.tool_schemas import (
    FINAL_ANSWER_SCHEMA,
    ToolRequest,
    ToolResult,
    TurnOutcome,
)
from plotpilot.infra.ids import new_turn_id
from plotpilot.infra.logging import log_event
from plotpilot.llm.messages import (
    assistant_tool_calls_message,
    system_message,
    tool_result_message,
    user_message,
)


async def _execute_calls(
    ctx: AssistantContext, calls: List[ToolRequest], *, turn_id: str
) -> List[ToolResult]:
    """
    Run every call the model requested in one step, concurrently.

    All calls finish (including their store writes) before this returns.
    Recoverable failures stay in the result list next to the successes;
    the first fatal error, if any, is raised once everything has settled.
    """
    for i, call in enumerate(calls):
        if not call.call_id:
            call.call_id = f"{turn_id}-{i}"

    settled = await asyncio.gather(
        *(ctx.registry.run(call, turn_id=turn_id) for call in calls),
        return_exceptions=True,
    )

    results: List[ToolResult] = []
    for call, outcome in zip(calls, settled):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, AssistantError):
                raise outcome
            raise BackendError(f"Tool {call.tool_name} crashed", outcome) from outcome
        results.append(outcome)
    return results


async def run_assistant_turn(ctx: AssistantContext, user_text: str) -> TurnOutcome:
    """
    Reason:
    - Implements model -> tools -> model until a final answer, bounded by max_steps.
    Benefit:
    - The model chooses tools; this loop only dispatches and validates,
      and never raises: every failure becomes a failed TurnOutcome.
    """
    turn_id = new_turn_id()
    declarations = ctx.registry.declarations()
    messages = [system_message(ctx.system_prompt), user_message(user_text)]
    tool_log: List[str] = []
    step = 0

    log_event(
        "assistant_turn_start",
        turn_id=turn_id,
        message_chars=len(user_text),
        max_steps=ctx.max_steps,
    )

    try:
        for step in range(1, ctx.max_steps + 1):
            try:
                turn = await asyncio.wait_for(
                    ctx.llm.complete(messages, declarations), timeout=ctx.llm_timeout
                )
            except asyncio.TimeoutError as e:
                raise BackendError(f"LLM call exceeded {ctx.llm_timeout}s", e) from e

            log_event("llm_step", turn_id=turn_id, step=step, kind=turn.kind)

            if turn.kind == "final":
                checked = validate(FINAL_ANSWER_SCHEMA, {"assistantResponse": turn.text})
                if not checked.ok:
                    raise BackendError("Final answer failed validation: " + "; ".join(checked.errors))

                log_event("assistant_turn_done", turn_id=turn_id, steps=step, tool_calls=tool_log)
                return TurnOutcome(
                    turn_id=turn_id,
                    ok=True,
                    response=checked.value["assistantResponse"],
                    steps=step,
                    tool_calls=tool_log,
                )

            elif turn.kind == "tool_calls":
                results = await _execute_calls(ctx, turn.calls, turn_id=turn_id)
                tool_log.extend(r.tool_name for r in results)

                messages.append(assistant_tool_calls_message(turn.calls))
                messages.extend(tool_result_message(r) for r in results)

            else:
                raise BackendError(f"Unhandled model turn kind: {turn.kind!r}")

        raise StepLimitExceeded(f"No final answer after {ctx.max_steps} model steps")

    except Exception as e:
        if isinstance(e, UnknownToolError):
            event = "assistant_turn_unknown_tool"
        elif isinstance(e, ToolOutputError):
            event = "assistant_turn_bad_tool_output"
        else:
            event = "assistant_turn_failed"

        log_event(
            event,
            level="error",
            turn_id=turn_id,
            step=step,
            error_type=type(e).__name__,
            error=str(e),
            tool_calls=tool_log,
        )
        return TurnOutcome(
            turn_id=turn_id,
            ok=False,
            error=str(e),
            error_type=type(e).__name__,
            steps=step,
            tool_calls=tool_log,
        )
