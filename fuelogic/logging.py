# fuelogic/logging.py
"""
Structured logging for Fuelogic Alerts.

Every line is a JSON object:
- timestamp, level, logger, message (an event name such as "webhook_registered")
- thread: dispatch attempts run in "webhook-dispatch-N" worker threads
- any keyword fields passed to the call, plus fields bound with bind()

Fields named like credentials are masked before they are written.

Usage:
    from fuelogic.logging import get_logger
    logger = get_logger(__name__)
    logger.info("webhook_delivery_complete", webhook_id=webhook.id, status_code=200)

    request_log = logger.bind(owner_id=principal.owner_id)
    request_log.info("inspection_alert_requested", reading_count=3)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

SENSITIVE_FIELDS = frozenset({"authorization", "token", "api_key", "password", "headers"})
MASK = "***"


def scrub(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of fields with credential-like values masked."""
    return {
        key: MASK if key.lower() in SENSITIVE_FIELDS and value else value
        for key, value in fields.items()
    }


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        fields = getattr(record, "structured_data", None)
        if fields:
            log_data.update(scrub(fields))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str, ensure_ascii=False)


class PlainLogFormatter(logging.Formatter):
    """Human-readable lines for local runs: event name followed by key=value pairs."""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "structured_data", None)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in scrub(fields).items())
        return line


class StructuredLogger:
    """
    Logger taking an event name plus keyword fields.

    bind() returns a logger that adds fixed fields to every call.
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self._logger = logging.getLogger(name)
        self._context = dict(context or {})

    def bind(self, **fields) -> "StructuredLogger":
        return StructuredLogger(self._logger.name, {**self._context, **fields})

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        extra = {"structured_data": {**self._context, **kwargs}}
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def exception(self, message: str, **kwargs):
        """Error with the current traceback attached."""
        self._log(logging.ERROR, message, exc_info=True, **kwargs)


_configured = False


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: Optional[str] = None,
    force: bool = False,
):
    """
    Configure the root logger.

    Only the first call takes effect unless force is set, so create_app()
    can be called repeatedly (tests build one app per case).

    Args:
        level: Log level name
        json_output: JSON lines (True) or plain text (False) on stdout
        log_file: Optional file receiving JSON lines as well
        force: Reconfigure even if already configured
    """
    global _configured
    if _configured and not force:
        return
    _configured = True

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredLogFormatter() if json_output else PlainLogFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredLogFormatter())
        root_logger.addHandler(file_handler)

    # Every outbound webhook request would otherwise log at INFO
    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    if not _configured:
        configure_logging()
    return StructuredLogger(name)


def get_api_logger() -> StructuredLogger:
    """Logger shared by the API routes."""
    return get_logger("fuelogic.api")
