"""
Logging utilities for Quillsmith.

Human-readable lines by default, JSON lines with ``--json-logs``. Pipeline
operations log through :class:`OperationLogger` so concurrent documents
keep their own execution id and path on every record.
"""

import json
import logging
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from quillsmith.config import get_settings

CONTEXT_FIELDS = ("command", "execution_id", "operation", "path", "model")

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _record_context(record: logging.LogRecord) -> dict:
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_record_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }
        return json.dumps(payload, default=str)


class ContextFormatter(logging.Formatter):
    """Text formatter that suffixes the command and operation context when present."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        tags = [context[k] for k in ("command", "operation", "execution_id") if k in context]
        return f"{line} [{' '.join(tags)}]" if tags else line


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
    use_json: Optional[bool] = None,
) -> None:
    """
    Configure root logging. Unset arguments fall back to the ``logging``
    settings section.

    Console output goes to stderr; stdout is reserved for command results.
    """
    config = get_settings().logging
    level = level or config.level
    use_json = config.json_format if use_json is None else use_json

    if use_json:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = ContextFormatter(format_string or config.format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = log_file or config.file
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class OperationLogger(logging.LoggerAdapter):
    """
    Adapter that stamps every record with one operation's context.

    Unlike the stdlib adapter, per-call ``extra`` is merged rather than
    replaced.
    """

    def __init__(self, logger: logging.Logger, operation: str, path: Optional[str] = None, **context):
        extra = {"execution_id": uuid.uuid4().hex[:12], "operation": operation, "path": path, **context}
        super().__init__(logger, extra)

    @property
    def execution_id(self) -> str:
        return self.extra["execution_id"]

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


class LogContext:
    """
    Attach context to every record created inside the block.

    Works by swapping the global record factory, so use it around a whole
    command rather than inside concurrently running tasks::

        with LogContext(logger, command="review"):
            ...
    """

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context
        self._previous = None

    def __enter__(self):
        previous = logging.getLogRecordFactory()
        context = self.context

        def factory(*args, **kwargs):
            record = previous(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            return record

        self._previous = previous
        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, *exc_info):
        if self._previous is not None:
            logging.setLogRecordFactory(self._previous)
            self._previous = None
