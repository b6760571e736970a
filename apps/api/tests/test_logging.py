"""
Structured logging: JSON lines carry the extra fields services attach.
"""
import json
import logging
import sys

from core.logging import ContextTextFormatter, JSONFormatter, SERVICE_NAME, log_fields


def _record(msg, **extra):
    record = logging.LogRecord("services.workflow", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_fields():
    record = _record("Application claimed", **log_fields(application_id="a1", from_status="PENDING"))

    line = json.loads(JSONFormatter().format(record))

    assert line["message"] == "Application claimed"
    assert line["level"] == "INFO"
    assert line["logger"] == "services.workflow"
    assert line["application_id"] == "a1"
    assert line["from_status"] == "PENDING"


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("store down")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    line = json.loads(JSONFormatter().format(record))

    assert "store down" in line["exception"]


def test_context_never_overwrites_core_keys():
    record = _record("Notification read", **log_fields(level="nope", error_code="NOT_FOUND", actor_id=None))

    line = json.loads(JSONFormatter().format(record))

    assert line["level"] == "INFO"
    assert line["service"] == SERVICE_NAME
    assert line["error_code"] == "NOT_FOUND"
    assert "actor_id" not in line
    assert "location" not in line


def test_warnings_carry_source_location():
    record = _record("Refused transition", **log_fields(error_code="CONFLICT"))
    record.levelno, record.levelname = logging.WARNING, "WARNING"

    line = json.loads(JSONFormatter().format(record))

    assert line["location"].endswith(":10")


def test_text_formatter_appends_context():
    record = _record("Team approved", **log_fields(team_id="t1", application_id="a1"))

    line = ContextTextFormatter().format(record)

    assert line.endswith("Team approved [application_id=a1 team_id=t1]")


def test_text_formatter_without_context_is_plain():
    line = ContextTextFormatter().format(_record("Started"))

    assert line.endswith("INFO - Started")


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-42"})

    assert resp.headers["X-Request-ID"] == "req-42"
    assert "X-Process-Time" in resp.headers
