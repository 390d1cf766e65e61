"""Logging for s3copy: the copy-logger sink and root logging configuration."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Protocol

# Extra attributes copied from log records into JSON output
_EXTRA_FIELDS = ("request_context", "upload_id", "part_number", "bytes")


class CopyLogger(Protocol):
    """Sink the copy engine reports phase transitions and failures to.

    Return values are ignored.
    """

    def info(self, msg: str, context: str = "") -> object: ...

    def error(self, msg: str, error: BaseException | None = None, context: str = "") -> object: ...


class StdlibCopyLogger:
    """CopyLogger backed by a standard library logger.

    The request context travels as the ``request_context`` record extra so
    the JSON formatter can emit it as its own field.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("s3copy.copier")

    def info(self, msg: str, context: str = "") -> None:
        self.logger.info(msg, extra={"request_context": context or None})

    def error(self, msg: str, error: BaseException | None = None, context: str = "") -> None:
        exc_info = (type(error), error, error.__traceback__) if error is not None else None
        self.logger.error(msg, exc_info=exc_info, extra={"request_context": context or None})


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects.

    Fields: timestamp, level, logger, message, plus any extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure root logging with the specified level and format.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Format type, 'text' for human-readable or 'json' for structured.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root.addHandler(handler)
