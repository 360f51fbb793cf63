import json

from plotpilot.infra.logging import log_event


def test_info_events_go_to_stdout_as_json(capsys):
    log_event("tool_call_end", turn_id="t1", tool_name="listProperties", ok=True)

    captured = capsys.readouterr()
    line = json.loads(captured.out)
    assert line["event"] == "tool_call_end"
    assert line["level"] == "info"
    assert line["turn_id"] == "t1"
    assert captured.err == ""


def test_warnings_go_to_stderr(capsys):
    log_event("tool_unknown", level="warning", tool_name="deleteAll")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["tool_name"] == "deleteAll"


def test_unserializable_fields_are_stringified(capsys):
    log_event("odd", value=object())

    assert "object object" in json.loads(capsys.readouterr().out)["value"]
