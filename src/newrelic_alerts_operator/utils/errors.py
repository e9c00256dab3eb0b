"""Operator exceptions and error sanitization utilities to prevent information leakage."""

from __future__ import annotations

import re
from typing import Any


class OperatorError(Exception):
    """Base class for errors raised by the operator."""


class NotFoundError(OperatorError):
    """Raised when an object is absent from the object store."""


class ConflictError(OperatorError):
    """Raised when a write is rejected because the object changed or already exists."""


class CredentialsError(OperatorError):
    """Raised when no API key could be resolved for a resource."""


class DependencyNotReadyError(OperatorError):
    """Raised when a resource waits on another one that has not synced yet."""


class ValidationError(OperatorError, ValueError):
    """Raised when a resource spec is malformed."""


class NewRelicAPIError(OperatorError):
    """Raised for any non-2xx response from the New Relic REST API."""

    def __init__(self, status_code: int, message: str, operation: str | None = None):
        self.status_code = status_code
        self.operation = operation
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}New Relic API returned {status_code}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"x-api-key[:\s]+([A-Za-z0-9\-_]+)",
    r"api[_\s]?key[:\s=]+([A-Za-z0-9\-_]+)",
    r"(NRAK-[A-Z0-9]+)",
    r"(NRAA-[A-Za-z0-9]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "api_key",
    "apikey",
    "password",
    "secret",
    "credentials",
    "token",
}


def partial_api_key(api_key: str) -> str:
    """Return a redacted form of an API key that is safe to log.

    Only the first four characters are kept so operators can tell keys apart.
    """
    if not api_key:
        return ""
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}{'*' * (len(api_key) - 4)}"


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:\s=]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
