"""Per-invocation reconciliation context and correlation IDs."""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from ..services.newrelic.base import AlertsClient

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


@dataclass(frozen=True)
class ReconcileContext:
    """Request-scoped values of one reconciliation.

    Built once per invocation and passed explicitly to every step, so nothing
    resolved for one object can leak into the reconciliation of another.
    """

    api_key: str
    client: AlertsClient
    region: str
    correlation_id: str = ""


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


@contextmanager
def with_correlation_id(corr_id: str | None = None) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.

    Args:
        corr_id: Correlation ID to use, a random one is generated when omitted

    Yields:
        The correlation ID
    """
    corr_id = corr_id or uuid.uuid4().hex
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)
