import asyncio
import json
import time
from typing import Any, Dict, List, Optional, Sequence

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from pydantic import TypeAdapter, ValidationError

from plotpilot.config import Settings
from plotpilot.core.errors import BackendError
from plotpilot.core.tool_schemas import AssistantTurn, FinalAnswer, ToolCalls, ToolRequest
from plotpilot.infra.logging import log_event
from plotpilot.llm.messages import ChatMessage

# asyncio.TimeoutError is the per-attempt bound set in complete()
TRANSIENT_ERRORS = (
    APIConnectionError,
    APITimeoutError,
    RateLimitError,
    InternalServerError,
    asyncio.TimeoutError,
)

_TURN_ADAPTER: TypeAdapter = TypeAdapter(AssistantTurn)


class LLMClient:
    """
    Contract every backend implements: one model step per call.

    Returns FinalAnswer or ToolCalls; raises BackendError when the backend
    is unreachable or its reply cannot be understood.
    """

    async def complete(
        self, messages: Sequence[ChatMessage], tools: Sequence[Dict[str, Any]]
    ) -> AssistantTurn:
        raise NotImplementedError


def parse_turn(data: Dict[str, Any]) -> AssistantTurn:
    """Validate a tagged dict ({"kind": "final" | "tool_calls", ...}) into an AssistantTurn."""
    try:
        return _TURN_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise BackendError("Model reply did not match the turn schema", e) from e


def to_openai_tools(declarations: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Tool declarations -> OpenAI function specs. Output fields ride in the description."""
    tools = []
    for d in declarations:
        description = d["description"]
        if d.get("returns"):
            description = f"{description} Returns: {d['returns']}."
        tools.append(
            {
                "type": "function",
                "function": {
                    "name": d["name"],
                    "description": description,
                    "parameters": d["input_schema"],
                },
            }
        )
    return tools


class OpenAIClient(LLMClient):
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        timeout: float = 30.0,
        max_attempts: int = 3,
        base_backoff_seconds: float = 1.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        if client is None and not api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")

        # Model config (explicit, not hidden)
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_backoff_seconds = base_backoff_seconds

        # Retries are ours (bounded, logged), not the SDK's
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

        # Cost tracking
        self.total_tokens = 0
        self.total_cost = 0.0
        self.cost_per_1k_tokens = 0.00015  # example, update as pricing changes

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.model,
            temperature=settings.temperature,
            timeout=settings.llm_timeout,
            max_attempts=settings.llm_max_attempts,
            base_backoff_seconds=settings.llm_backoff_seconds,
        )

    async def complete(
        self, messages: Sequence[ChatMessage], tools: Sequence[Dict[str, Any]]
    ) -> AssistantTurn:
        """
        One model step with bounded retries.

        Retry strategy:
        - Transient API failures (connection, timeout, rate limit, 5xx) and attempts
          running past `timeout`: backoff and retry
        - Anything else, including malformed replies: fail immediately
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                log_event(
                    "llm_attempt",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    model=self.model,
                )
                response = await asyncio.wait_for(
                    self._call_openai(messages, tools), timeout=self.timeout
                )
                return self._to_turn(response)

            except TRANSIENT_ERRORS as e:
                last_error = e
                log_event("llm_transient_error", level="warning", attempt=attempt, error_type=type(e).__name__)
                if attempt < self.max_attempts:
                    await self._backoff(attempt)

            except BackendError:
                raise

            except Exception as e:
                log_event("llm_error", level="error", attempt=attempt, error_type=type(e).__name__)
                raise BackendError(f"LLM call failed: {type(e).__name__}", e) from e

        raise BackendError(
            f"LLM failed after {self.max_attempts} attempts", last_error
        ) from last_error

    async def _call_openai(
        self, messages: Sequence[ChatMessage], tools: Sequence[Dict[str, Any]]
    ) -> Any:
        start = time.time()

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": list(messages),
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = to_openai_tools(tools)
            kwargs["tool_choice"] = "auto"

        response = await self.client.chat.completions.create(**kwargs)

        log_event("llm_latency", seconds=time.time() - start)
        self._track_usage(response)
        return response

    def _track_usage(self, response: Any) -> None:
        usage = getattr(response, "usage", None)
        tokens_used = getattr(usage, "total_tokens", None) or 0
        cost = (tokens_used / 1000) * self.cost_per_1k_tokens

        self.total_tokens += tokens_used
        self.total_cost += cost

        log_event(
            "llm_usage",
            tokens=tokens_used,
            cost=cost,
            total_tokens=self.total_tokens,
            total_cost=self.total_cost,
        )

    def _to_turn(self, response: Any) -> AssistantTurn:
        choices = getattr(response, "choices", None)
        if not choices or choices[0].message is None:
            raise BackendError("Model returned no choices")

        message = choices[0].message
        if message.tool_calls:
            calls = []
            for tc in message.tool_calls:
                raw_args = tc.function.arguments
                try:
                    args = json.loads(raw_args) if raw_args and raw_args.strip() else {}
                except json.JSONDecodeError as e:
                    raise BackendError(f"Malformed arguments for tool {tc.function.name}", e) from e
                if not isinstance(args, dict):
                    raise BackendError(f"Arguments for tool {tc.function.name} are not an object")
                calls.append(ToolRequest(tool_name=tc.function.name, args=args, call_id=tc.id))
            return ToolCalls(calls=calls)

        return FinalAnswer(text=message.content or "")

    async def _backoff(self, attempt: int) -> None:
        """
        Exponential backoff to reduce pressure on the API and avoid rate limits.
        """
        delay = self.base_backoff_seconds * (2 ** (attempt - 1))
        log_event("llm_backoff", delay=delay)
        await asyncio.sleep(delay)
