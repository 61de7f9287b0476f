from __future__ import annotations

import json
import logging

from sheetviz.utils import logging as sv_logging


def test_new_request_id_format() -> None:
    first = sv_logging.new_request_id()
    second = sv_logging.new_request_id()

    assert first.startswith("sv-") and len(first) == 15
    assert first != second


def test_log_event_writes_one_json_line(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="sheetviz"):
        sv_logging.log_event("mapping.done", {"chart": "pie", "row_count": 3})

    record = caplog.records[-1]
    data = json.loads(record.getMessage())
    assert data["event"] == "mapping.done"
    assert data["service"] == "sheetviz"
    assert data["level"] == "info"
    assert data["chart"] == "pie"


def test_log_event_uses_requested_level(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="sheetviz"):
        sv_logging.log_event("table.normalize.error", {"error": "bad"}, level="ERROR")

    assert caplog.records[-1].levelno == logging.ERROR


def test_event_sink_stays_off_without_mongodb_uri(monkeypatch) -> None:
    monkeypatch.setattr("sheetviz.config.app_config.MONGODB_URI", "")
    sink = sv_logging._MongoEventSink()

    sink.write({"event": "x"})

    assert sink._resolved
    assert sink._collection is None
