"""
Chapter Portal - Centralized Logging Configuration
Plain contextual text during development, JSON structured logs in production
"""

import logging
import sys
import json
import traceback
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar


# Context variables for tracing which admin/entity a log line belongs to
user_email_var: ContextVar[str] = ContextVar('user_email', default='')
entity_id_var: ContextVar[str] = ContextVar('entity_id', default='')


def get_user_email() -> str:
    """Get current user email from context"""
    return user_email_var.get() or ''


def set_user_email(email: str) -> None:
    """Set user email in context"""
    user_email_var.set(email)


def get_entity_id() -> str:
    """Get current entity ID from context"""
    return entity_id_var.get() or ''


def set_entity_id(entity_id: str) -> None:
    """Set entity ID in context"""
    entity_id_var.set(entity_id)


_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName', 'user_email', 'entity_id',
}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in production
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        user_email = get_user_email()
        if user_email:
            log_data["user_email"] = user_email

        entity_id = get_entity_id()
        if entity_id:
            log_data["entity_id"] = entity_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """
    Formatter that includes the admin and entity the line belongs to
    """

    def format(self, record: logging.LogRecord) -> str:
        record.user_email = get_user_email() or '-'
        record.entity_id = get_entity_id() or '-'

        return super().format(record)


class PortalLogger(logging.Logger):
    """
    Logger with convenience methods for structured logging
    """

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        """Log a backend call"""
        self.debug(
            f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: str = None,
                       reason: str = None, **kwargs) -> None:
        """Log authentication events"""
        level = logging.INFO if success else logging.WARNING
        self.log(
            level,
            f"Auth {event}: {'success' if success else 'failed'}" +
            (f" - {user_email}" if user_email else "") +
            (f" - {reason}" if reason else ""),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "auth_user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_classification(self, entity_kind: str, entity_id: str,
                           moved_to_past: int, moved_to_upcoming: int,
                           **kwargs) -> None:
        """Log an event reclassification pass that moved records"""
        self.info(
            f"Reclassified {entity_kind} {entity_id}: "
            f"{moved_to_past} to past, {moved_to_upcoming} to upcoming",
            extra={
                "event_type": "classification",
                "entity_kind": entity_kind,
                "moved_to_past": moved_to_past,
                "moved_to_upcoming": moved_to_upcoming,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: str = None,
                               **kwargs) -> None:
        """Log error with full context"""
        self.error(
            f"Error in {context}: {type(error).__name__}: {str(error)}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )


def _portal_logger() -> PortalLogger:
    logger = logging.getLogger("portal")
    logger.__class__ = PortalLogger  # Ensure it's our custom class
    return logger


def setup_logging(
    level: str = "WARNING",
    environment: str = "development",
    log_file: Optional[str] = None,
) -> PortalLogger:
    """Attach handlers to the portal logger based on environment"""
    logger = _portal_logger()
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    console_level = getattr(logging, level.upper(), logging.WARNING)

    if environment == "production":
        formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = formatter
    else:
        formatter = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | "
            "[%(user_email)s] [%(entity_id)s] | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )

    # stderr keeps log lines out of rendered tables
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=10485760,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug(
        "Logging initialized",
        extra={"environment": environment, "log_level": level}
    )

    return logger


# Handlers are attached by setup_logging(); until then records propagate to root
logger: PortalLogger = _portal_logger()


__all__ = [
    'logger',
    'setup_logging',
    'get_user_email',
    'set_user_email',
    'get_entity_id',
    'set_entity_id',
    'PortalLogger',
]
