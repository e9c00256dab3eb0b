"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_ADOPTED,
    EVENT_REASON_CREATED,
    EVENT_REASON_DELETED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_UPDATED,
)


def emit_event(
    target: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        target: Object reference (apiVersion, kind, metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        target,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(target: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(target, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(target: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(target, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_remote_created(target: dict[str, Any], what: str, remote_id: int) -> None:
    emit_event(target, EVENT_REASON_CREATED, f"New Relic {what} {remote_id} created")


def emit_remote_updated(target: dict[str, Any], what: str, remote_id: int) -> None:
    emit_event(target, EVENT_REASON_UPDATED, f"New Relic {what} {remote_id} updated")


def emit_remote_adopted(target: dict[str, Any], what: str, remote_id: int) -> None:
    emit_event(target, EVENT_REASON_ADOPTED, f"Existing New Relic {what} {remote_id} adopted")


def emit_remote_deleted(target: dict[str, Any], what: str, remote_id: int) -> None:
    emit_event(target, EVENT_REASON_DELETED, f"New Relic {what} {remote_id} deleted")
