"""
Conversation state passed between the orchestrator and an LLM client.

Messages use the chat-completions shape (role/content/tool_calls/tool_call_id);
clients for other providers translate from it.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

from plotpilot.core.tool_schemas import ToolRequest, ToolResult

ChatMessage = Dict[str, Any]


def system_message(content: str) -> ChatMessage:
    return {"role": "system", "content": content}


def user_message(content: str) -> ChatMessage:
    return {"role": "user", "content": content}


def assistant_tool_calls_message(calls: List[ToolRequest]) -> ChatMessage:
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": call.call_id,
                "type": "function",
                "function": {
                    "name": call.tool_name,
                    "arguments": json.dumps(call.args, ensure_ascii=False),
                },
            }
            for call in calls
        ],
    }


def tool_result_message(result: ToolResult) -> ChatMessage:
    if result.ok:
        payload: Dict[str, Any] = {"ok": True, **result.data}
    else:
        payload = {"ok": False, "error": result.error}
    return {
        "role": "tool",
        "tool_call_id": result.call_id,
        "content": json.dumps(payload, ensure_ascii=False, default=str),
    }
