import json
import logging

from markdown_retrieval.telemetry import JsonFormatter


def test_json_formatter_includes_event_fields() -> None:
    record = logging.LogRecord(
        name="markdown_retrieval",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="index_built",
        args=(),
        exc_info=None,
    )
    record.event = "index_built"
    record.chunks = 3
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "index_built"
    assert payload["event"] == "index_built"
    assert payload["chunks"] == 3
    assert payload["level"] == "info"
    assert "lineno" not in payload
