import uuid


def new_turn_id() -> str:
    """
    Reason:
    - A single identifier to tie together all logs of one assistant turn
      (model steps, tool calls, validation failures).
    """
    return uuid.uuid4().hex


def new_property_id() -> str:
    return f"prop-{uuid.uuid4().hex[:12]}"


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:12]}"
