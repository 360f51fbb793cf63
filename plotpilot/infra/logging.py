import json
import sys
import time
from typing import Any, Dict

WARN_LEVELS = ("warning", "error")


def log_event(event: str, *, level: str = "info", **fields: Any) -> None:
    """
    Emit one structured JSON line per event.

    Reason:
    - Every turn threads a turn_id through its events so one grep shows the whole story.
    Benefit:
    - Tool names and validation detail stay in the server log, never in replies.

    Warnings and errors go to stderr so they survive when stdout is piped away.
    """
    payload: Dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "event": event,
        **fields,
    }
    stream = sys.stderr if level in WARN_LEVELS else sys.stdout
    print(json.dumps(payload, ensure_ascii=False, default=str), file=stream, flush=True)
