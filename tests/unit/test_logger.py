import json
import logging

from screenshot_verify.utils.logger import JsonLineFormatter, bind, get_logger, log_with_context, unbind


def _record(msg: str, context=None) -> logging.LogRecord:
    record = logging.LogRecord("screenshot_verify.core.verify", logging.INFO, __file__, 1, msg, None, None)
    if context is not None:
        record.extra = context
    return record


def test_json_line_carries_message_and_context():
    line = JsonLineFormatter().format(_record("App stopped", {"run_id": "20261019T120000Z", "app_pid": 4242}))
    entry = json.loads(line)
    assert entry["msg"] == "App stopped"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "screenshot_verify.core.verify"
    assert entry["run_id"] == "20261019T120000Z"
    assert entry["app_pid"] == 4242
    assert "\n" not in line


def test_json_line_without_context():
    entry = json.loads(JsonLineFormatter().format(_record("Launching app")))
    assert set(entry) == {"ts", "level", "logger", "msg", "pid"}


def test_bound_context_reaches_scoped_logger():
    bind(run_id="r1")
    try:
        scoped = log_with_context(get_logger(__name__), app_pid=7)
        assert scoped.extra["extra"] == {"run_id": "r1", "app_pid": 7}
    finally:
        unbind("run_id")
    assert "run_id" not in get_logger(__name__).extra["extra"]
