"""
JSON logging for the `authz` logger tree.

Follows Layer 6 rules:
- One JSON object per line; security events add user_id, tenant_id, action, result, meta
- NEVER logs passwords, tokens or secrets
"""
import logging
import json
from typing import Any, Dict, Optional
from datetime import datetime, timezone

ROOT_LOGGER = "authz"

logger = logging.getLogger(ROOT_LOGGER)
logger.setLevel(logging.INFO)

_handler = logging.StreamHandler()
_handler.setLevel(logging.DEBUG)

_EXTRA_FIELDS = ("user_id", "tenant_id", "action", "result", "meta")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


_handler.setFormatter(JSONFormatter())
logger.addHandler(_handler)

# Prevent duplicate logs
logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Child logger of the application tree, so every module shares the JSON handler."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logger.getChild(name)


def configure_logging(level: str) -> None:
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def log_security_event(
    action: str,
    result: str,
    user_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    level: str = "info",
) -> None:
    """
    Log security-sensitive actions (login, failed login, token refresh, permission changes).

    Emits structured logs with:
    - user_id, tenant_id, action, result, timestamp
    - Additional metadata in meta dict

    Args:
        action: Action name (e.g., "login", "refresh", "permission_grant")
        result: Result status (e.g., "success", "failure", "denied")
        user_id: User ID (optional)
        tenant_id: Tenant ID (optional)
        meta: Additional metadata dict (optional)
        level: Log level ("info", "warning", "error")
    """
    log_method = getattr(logger, level.lower(), logger.info)
    extra: Dict[str, Any] = {
        "action": action,
        "result": result,
    }
    if user_id:
        extra["user_id"] = user_id
    if tenant_id:
        extra["tenant_id"] = tenant_id
    if meta:
        extra["meta"] = meta

    log_method("Security event", extra=extra)
