"""
SocietySync - Logging

Every line carries the request id, the acting user and (for society scoped
routes) the society id. Development gets a readable pipe-separated format,
production gets one JSON object per line.
"""

import logging
import sys
import json
import traceback
import uuid
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List
from contextvars import ContextVar

from app.core.config import settings
from app.core.types import utcnow


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
society_id_var: ContextVar[str] = ContextVar('society_id', default='')

# Record attribute -> context variable
_CONTEXT_FIELDS = {
    'request_id': request_id_var,
    'user_id': user_id_var,
    'society_id': society_id_var,
}


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get()


def set_user_id(user_id: str) -> None:
    """Bind the authenticated user to every log line of this request"""
    user_id_var.set(user_id)


def get_society_id() -> str:
    return society_id_var.get()


def set_society_id(society_id: str) -> None:
    society_id_var.set(society_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


_STANDARD_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'taskName'}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, context and `extra=` fields flattened in"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for field, var in _CONTEXT_FIELDS.items():
            value = var.get()
            if value:
                payload[field] = value

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith('_'):
                payload.setdefault(key, value)

        return json.dumps(payload, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain text formatter; fills the context placeholders with '-' when unset"""

    def format(self, record: logging.LogRecord) -> str:
        for field, var in _CONTEXT_FIELDS.items():
            setattr(record, field, var.get() or '-')
        return super().format(record)


class SocietySyncLogger(logging.Logger):
    """Logger with helpers for the events operators search for"""

    def log_auth_event(self, event: str, success: bool, user_email: str = None,
                       reason: str = None, **kwargs) -> None:
        parts = [f"Auth {event}: {'success' if success else 'failed'}"]
        if user_email:
            parts.append(user_email)
        if reason:
            parts.append(reason)
        self.log(
            logging.INFO if success else logging.WARNING,
            " - ".join(parts),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_membership_event(self, event: str, user_id: str, society_id: str = None,
                             role: str = None, **kwargs) -> None:
        """Membership ledger transitions (join, move, promote, leave)"""
        summary = f"Membership {event}: user={user_id}"
        if society_id:
            summary += f" society={society_id}"
        if role:
            summary += f" role={role}"
        self.info(
            summary,
            extra={
                "event_type": "membership",
                "membership_event": event,
                "member_user_id": user_id,
                "member_society_id": society_id,
                "member_role": role,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: str = None,
                               **kwargs) -> None:
        self.error(
            f"Error in {context}: {type(error).__name__}: {error}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            }
        )


# Plain text layouts; the file gets the long one
CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"
FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | "
    "[%(request_id)s] [%(user_id)s] [%(society_id)s] | "
    "%(funcName)s:%(lineno)d | %(message)s"
)


def _build_handlers(json_logs: bool) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(JSONFormatter() if json_logs else ContextualFormatter(CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [console]

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=10 if json_logs else 5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter() if json_logs else ContextualFormatter(FILE_FORMAT))
        handlers.append(file_handler)

    return handlers


def setup_logging() -> SocietySyncLogger:
    """Configure the "societysync" logger; JSON output in production"""
    logging.setLoggerClass(SocietySyncLogger)

    logger = logging.getLogger("societysync")
    logger.__class__ = SocietySyncLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    json_logs = settings.ENVIRONMENT == "production"
    for handler in _build_handlers(json_logs):
        logger.addHandler(handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosmtplib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info(
        "Logging initialized",
        extra={
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "json_logging": json_logs,
        }
    )
    return logger


logger: SocietySyncLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'get_society_id',
    'set_society_id',
    'generate_request_id',
    'SocietySyncLogger',
]
