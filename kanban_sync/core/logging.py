"""
Structured logging configuration
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from kanban_sync.config import settings


class SecurityFilter(logging.Filter):
    """Filter to remove sensitive information from logs"""

    SENSITIVE_KEYS = {
        'password', 'token', 'secret', 'key', 'authorization',
        'cookie', 'session', 'csrf', 'api_key', 'access_token',
        'refresh_token', 'jwt', 'bearer'
    }

    def filter(self, record):
        """Remove sensitive data from log records"""
        if hasattr(record, 'msg') and isinstance(record.msg, dict):
            record.msg = self._sanitize_dict(record.msg)

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = self._sanitize_dict(record.args)
            else:
                record.args = tuple(
                    self._sanitize_dict(arg) if isinstance(arg, dict) else arg
                    for arg in record.args
                )

        return True

    def _sanitize_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively sanitize dictionary data"""
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_dict(value)
            elif isinstance(value, list):
                sanitized[key] = [
                    self._sanitize_dict(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                sanitized[key] = value
        return sanitized


class CustomJSONFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = settings.app_name
        log_record['version'] = settings.app_version
        log_record['environment'] = settings.environment

        # Sync context if available
        if hasattr(record, 'project_id'):
            log_record['project_id'] = record.project_id
        if hasattr(record, 'user_id'):
            log_record['user_id'] = record.user_id
        if hasattr(record, 'operation'):
            log_record['operation'] = record.operation


def setup_logging():
    """Configure structured logging for the client"""

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.log_format == "json":
        formatter = CustomJSONFormatter(
            fmt='%(timestamp)s %(level)s %(logger)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)

    # Payloads may carry passwords or session material
    console_handler.addFilter(SecurityFilter())

    root_logger.addHandler(console_handler)

    configure_third_party_loggers()

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging configured",
        extra={
            "log_level": settings.log_level,
            "log_format": settings.log_format,
            "environment": settings.environment
        }
    )


def configure_third_party_loggers():
    """Configure third-party library loggers"""
    quiet_level = logging.WARNING if not settings.debug else logging.DEBUG
    logging.getLogger("aiohttp.access").setLevel(quiet_level)
    logging.getLogger("aiohttp.client").setLevel(quiet_level)
    logging.getLogger("redis").setLevel(quiet_level)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)


def log_request_start(logger: logging.Logger, method: str, path: str, **context):
    """Log outgoing request start"""
    logger.debug(
        f"Request started: {method} {path}",
        extra={
            "event": "request_start",
            "method": method,
            "path": path,
            **context
        }
    )


def log_request_end(logger: logging.Logger, method: str, path: str, status_code: int,
                    duration: float, **context):
    """Log outgoing request completion"""
    level = logging.WARNING if status_code >= 400 else logging.INFO
    logger.log(
        level,
        f"Request completed: {method} {path} - {status_code} ({duration:.3f}s)",
        extra={
            "event": "request_end",
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration": duration,
            **context
        }
    )


def log_sync_event(logger: logging.Logger, event: str, level: int = logging.DEBUG, **context):
    """Log a synchronizer/coordinator lifecycle event"""
    logger.log(
        level,
        f"Sync event: {event}",
        extra={
            "event": "sync",
            "sync_event": event,
            **context
        }
    )
