"""
Logging setup for the portal.

Services attach workflow context through ``extra=`` (request_id, poc_user,
area_type, step); the timing middleware adds the HTTP fields. Production
writes one JSON object per line, everything else a plain text line with the
workflow context appended as ``key=value`` pairs.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

WORKFLOW_KEYS = ("request_id", "poc_user", "area_type", "step")
HTTP_KEYS = ("method", "path", "status", "duration_ms", "remote_addr", "http_request_id")

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic")


def record_context(record: logging.LogRecord, keys=WORKFLOW_KEYS + HTTP_KEYS) -> dict:
    """The ``extra=`` fields present on *record*, in a stable order."""
    return {key: getattr(record, key) for key in keys if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFormatter(logging.Formatter):
    """``12:00:01 INFO role_portal.x: Saved 2 role choices [request_id=.. area_type=elm]``"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record, WORKFLOW_KEYS)
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            context["ms"] = f"{duration:.0f}"
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        head, sep, tail = line.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def configure_logging(app):
    """Install one stderr handler on the root logger.

    JSON when the app runs without DEBUG or TESTING, text otherwise. The
    level comes from ``LOG_LEVEL`` (env first, then app config).
    """
    testing = app.config.get("TESTING", False)
    json_output = not (app.config.get("DEBUG", False) or testing)

    level_name = os.getenv("LOG_LEVEL") or app.config.get("LOG_LEVEL") or ("INFO" if json_output else "DEBUG")
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else ContextFormatter())

    # create_app runs once per test app; replace rather than stack handlers
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Log level %s, %s output", level_name, "json" if json_output else "text")
