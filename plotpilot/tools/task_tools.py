from __future__ import annotations

from functools import partial
from typing import Any, Dict, List

from plotpilot.core.schema import object_schema, string_field
from plotpilot.core.tool_schemas import ToolDefinition
from plotpilot.infra.logging import log_event
from plotpilot.store.base import PropertyStore

ADD_BUSINESS_TASK_INPUT = object_schema(
    {
        "taskDescription": string_field("A detailed description of the task to be added.", min_length=1),
    }
)

ADD_BUSINESS_TASK_OUTPUT = object_schema(
    {
        "message": string_field("Confirmation message after attempting to add the task.", min_length=1),
    }
)


async def add_business_task(store: PropertyStore, taskDescription: str) -> Dict[str, Any]:
    task = await store.create_task(taskDescription)
    log_event("business_task_added", task_id=task.id)
    return {
        "message": (
            f'Okay, I\'ve noted down the task: "{taskDescription}". '
            "You can find it in your task list."
        ),
    }


def build_task_tools(store: PropertyStore) -> List[ToolDefinition]:
    return [
        ToolDefinition(
            name="addBusinessTask",
            description=(
                "Adds a new task to the business to-do list or captures a reminder. Use this when "
                "the user explicitly asks to create a task, note, or reminder."
            ),
            input_schema=ADD_BUSINESS_TASK_INPUT,
            output_schema=ADD_BUSINESS_TASK_OUTPUT,
            handler=partial(add_business_task, store),
        ),
    ]
