import json
import logging

import pytest

from hirescore.core.logging import JsonFormatter

pytestmark = pytest.mark.no_db_cleanup


def test_json_formatter_carries_scheduling_context():
    record = logging.LogRecord(
        name="hirescore.domain.scheduling_service",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="%s lost a concurrent write",
        args=("respond",),
        exc_info=None,
    )
    record.interview_id = 42
    record.operation = "respond"
    record.attempt = 2

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "respond lost a concurrent write"
    assert payload["interview_id"] == 42
    assert payload["operation"] == "respond"
    assert payload["attempt"] == 2


def test_json_formatter_omits_missing_context():
    record = logging.LogRecord("hirescore", logging.INFO, __file__, 1, "hello", (), None)
    payload = json.loads(JsonFormatter().format(record))
    assert "interview_id" not in payload
    assert payload["message"] == "hello"
