"""
AbiBoard - Logging
==================

One ``abiboard`` logger for the whole service. Production writes one JSON
object per line; everywhere else a short text format is used. Request and
user ids are kept in context vars by the request middleware and the auth
dependency, and both formatters pick them up.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from abiboard.core.config import settings


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get()


def set_user_id(user_id: str) -> None:
    user_id_var.set(str(user_id) if user_id else "")


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


# Attributes every LogRecord has; everything else came in through ``extra``
_STANDARD_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "request_id", "user_id",
}


class JSONFormatter(logging.Formatter):
    """Structured output for log aggregation"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if get_request_id():
            entry["request_id"] = get_request_id()
        if get_user_id():
            entry["user_id"] = get_user_id()

        entry.update({
            key: value for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        })

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }
        return json.dumps(entry, default=str, ensure_ascii=False)


class ContextualFormatter(logging.Formatter):
    """Text format with request and user id"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or "-"
        record.user_id = get_user_id() or "-"
        return super().format(record)


class AbiBoardLogger(logging.Logger):
    """Logger with helpers for the events the service reports"""

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} ({duration_ms:.1f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 1),
                **kwargs,
            },
        )

    def log_auth_event(self, event: str, success: bool, user_id: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        message = f"Auth {event} {'ok' if success else 'rejected'}"
        if user_id:
            message += f" for {user_id}"
        if reason:
            message += f": {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={"event_type": "auth", "auth_event": event, "auth_success": success, **kwargs},
        )

    def log_profile_event(self, event: str, profile_id: str, **kwargs) -> None:
        """Draft saves, submissions and retractions"""
        self.info(
            f"[Profile] {profile_id} {event}",
            extra={"event_type": "profile", "profile_event": event, "profile_id": profile_id, **kwargs},
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None, **kwargs) -> None:
        self.error(
            f"{context or 'Unhandled error'}: {type(error).__name__}: {error}",
            exc_info=error,
            extra={"event_type": "error", "error_type": type(error).__name__, "error_context": context, **kwargs},
        )


def setup_logging() -> AbiBoardLogger:
    logging.setLoggerClass(AbiBoardLogger)
    log = logging.getLogger("abiboard")
    log.__class__ = AbiBoardLogger
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    log.propagate = False
    log.handlers.clear()

    if settings.ENVIRONMENT == "production":
        console_formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = console_formatter
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s [%(request_id)s] %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s %(levelname)-8s [%(request_id)s] [%(user_id)s] %(name)s:%(lineno)d %(message)s"
        )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(console_formatter)
    log.addHandler(console)

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
        file_handler.setFormatter(file_formatter)
        log.addHandler(file_handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "PIL", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log


logger: AbiBoardLogger = setup_logging()
