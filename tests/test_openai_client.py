"""Tests for the OpenAI backend adapter, using a stubbed AsyncOpenAI."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from plotpilot.core.context import build_registry
from plotpilot.core.errors import BackendError
from plotpilot.core.tool_schemas import FinalAnswer, ToolCalls
from plotpilot.llm.client import OpenAIClient, parse_turn, to_openai_tools
from plotpilot.store.memory import InMemoryPropertyStore


def completion(content=None, tool_calls=None, tokens=42):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(total_tokens=tokens),
    )


HANG = "hang"


def tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        reply = self.replies.pop(0)
        if reply == HANG:
            await asyncio.sleep(1)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_client(*replies, max_attempts=3, timeout=30.0):
    completions = FakeCompletions(replies)
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    client = OpenAIClient(client=fake, timeout=timeout, max_attempts=max_attempts, base_backoff_seconds=0)
    return client, completions


def connection_error():
    return APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


@pytest.mark.asyncio
async def test_plain_content_becomes_final_answer():
    client, _ = make_client(completion(content="Salam!"))

    turn = await client.complete([{"role": "user", "content": "hi"}], [])

    assert isinstance(turn, FinalAnswer)
    assert turn.text == "Salam!"
    assert client.total_tokens == 42


@pytest.mark.asyncio
async def test_tool_calls_are_parsed():
    client, _ = make_client(
        completion(
            tool_calls=[
                tool_call("c1", "listProperties", json.dumps({"filter": "sold"})),
                tool_call("c2", "addBusinessTask", '{"taskDescription": "call Ahmed"}'),
            ]
        )
    )

    turn = await client.complete([{"role": "user", "content": "hi"}], [])

    assert isinstance(turn, ToolCalls)
    assert [(c.call_id, c.tool_name, c.args) for c in turn.calls] == [
        ("c1", "listProperties", {"filter": "sold"}),
        ("c2", "addBusinessTask", {"taskDescription": "call Ahmed"}),
    ]


@pytest.mark.asyncio
async def test_empty_arguments_mean_no_arguments():
    client, _ = make_client(completion(tool_calls=[tool_call("c1", "listProperties", "")]))

    turn = await client.complete([], [])

    assert turn.calls[0].args == {}


@pytest.mark.asyncio
async def test_malformed_arguments_are_a_backend_error():
    client, completions = make_client(completion(tool_calls=[tool_call("c1", "listProperties", "{not json")]))

    with pytest.raises(BackendError, match="Malformed arguments"):
        await client.complete([], [])
    assert len(completions.requests) == 1


@pytest.mark.asyncio
async def test_transient_errors_are_retried():
    client, completions = make_client(connection_error(), completion(content="ok"))

    turn = await client.complete([], [])

    assert turn.text == "ok"
    assert len(completions.requests) == 2


@pytest.mark.asyncio
async def test_attempt_past_its_timeout_is_retried():
    client, completions = make_client(HANG, completion(content="ok"), timeout=0.05)

    turn = await client.complete([], [])

    assert turn.text == "ok"
    assert len(completions.requests) == 2


@pytest.mark.asyncio
async def test_retries_are_bounded():
    client, completions = make_client(connection_error(), connection_error(), max_attempts=2)

    with pytest.raises(BackendError, match="after 2 attempts"):
        await client.complete([], [])
    assert len(completions.requests) == 2


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    client, completions = make_client(ValueError("bad request"), completion(content="unused"))

    with pytest.raises(BackendError):
        await client.complete([], [])
    assert len(completions.requests) == 1


@pytest.mark.asyncio
async def test_tools_are_sent_with_auto_choice():
    registry = build_registry(InMemoryPropertyStore())
    client, completions = make_client(completion(content="ok"))

    await client.complete([{"role": "user", "content": "hi"}], registry.declarations())

    request = completions.requests[0]
    assert request["tool_choice"] == "auto"
    assert {t["function"]["name"] for t in request["tools"]} == {d["name"] for d in registry.declarations()}


def test_openai_tool_specs_describe_outputs():
    registry = build_registry(InMemoryPropertyStore())

    specs = {t["function"]["name"]: t for t in to_openai_tools(registry.declarations())}

    add = specs["addProperty"]
    assert add["type"] == "function"
    assert add["function"]["parameters"]["required"] == ["name", "address"]
    assert "Returns: propertyId (string)" in add["function"]["description"]


def test_parse_turn_rejects_unknown_kinds():
    with pytest.raises(BackendError):
        parse_turn({"kind": "shrug"})

    assert parse_turn({"kind": "final", "text": "hi"}) == FinalAnswer(text="hi")


def test_missing_api_key_is_reported():
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        OpenAIClient(api_key=None)
