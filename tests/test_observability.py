from __future__ import annotations

import json
import logging

from api.observability import JsonFormatter, request_log_fields, reset_request_id, set_request_id, set_user_id


def _record(**extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": "core.test", "levelname": "INFO", "msg": "client_created"})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_extra():
    token = set_request_id("req-1")
    user_token = set_user_id("coach-1")
    try:
        line = JsonFormatter().format(_record(client_id=4))
    finally:
        reset_request_id(token)
        set_user_id(None)
    payload = json.loads(line)
    assert payload["message"] == "client_created"
    assert payload["request_id"] == "req-1"
    assert payload["user_id"] == "coach-1"
    assert payload["client_id"] == 4
    assert user_token is not None


def test_json_formatter_redacts_secrets():
    payload = json.loads(JsonFormatter().format(_record(token="abc.def", api_key="k")))
    assert payload["token"] == "[redacted]"
    assert payload["api_key"] == "[redacted]"


def test_request_log_fields_truncates_user_agent():
    fields = request_log_fields(
        method="GET", path="/api/v1/health", status_code=200, duration_ms=1.234, client_ip=None, user_agent="x" * 500
    )
    assert fields["duration_ms"] == 1.23
    assert fields["client_ip"] == ""
    assert len(fields["user_agent"]) == 200
