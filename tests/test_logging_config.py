"""
Tests: log formatters carry the workflow context passed through ``extra=``.
"""

import json
import logging

from role_portal.middleware.logging_config import ContextFormatter, JSONFormatter, record_context


def _record(msg="Saved 2 role choices", **extra):
    record = logging.LogRecord("role_portal.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_record_context_skips_missing_fields(self):
        record = _record(request_id="r1", area_type="elm")
        assert record_context(record) == {"request_id": "r1", "area_type": "elm"}

    def test_json_line(self):
        line = JSONFormatter().format(_record(request_id="r1", step="supervisor_approval", status=200))
        entry = json.loads(line)

        assert entry["message"] == "Saved 2 role choices"
        assert entry["level"] == "INFO"
        assert entry["request_id"] == "r1"
        assert entry["step"] == "supervisor_approval"
        assert entry["status"] == 200
        assert "poc_user" not in entry

    def test_text_line_appends_workflow_context(self):
        line = ContextFormatter().format(_record(request_id="r1", area_type="elm", duration_ms=12.4))
        assert line.endswith("Saved 2 role choices [request_id=r1 area_type=elm ms=12]")

    def test_text_line_without_context(self):
        line = ContextFormatter().format(_record())
        assert line.endswith("role_portal.test: Saved 2 role choices")
