"""Main entry point for the New Relic Alerts Operator."""

from __future__ import annotations

import os
import threading
from typing import Any

import kopf
from werkzeug.serving import make_server

from . import health
from . import logging as structured_logging
from .constants import API_GROUP_VERSION, KIND_CHANNEL, KIND_CONDITION, KIND_POLICY
from .handlers import ChannelReconciler, ConditionReconciler, PolicyReconciler, run_handler
from .store import KubernetesObjectStore
from .tracing import initialize_tracing

_store: KubernetesObjectStore | None = None


def get_store() -> KubernetesObjectStore:
    """Return the process-wide object store, creating it on first use."""
    global _store
    if _store is None:
        _store = KubernetesObjectStore()
    return _store


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    structured_logging.setup_structured_logging()
    initialize_tracing()

    # Status belongs to the reconcilers, kopf keeps its bookkeeping in annotations
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = int(os.getenv("MAX_WORKERS", "4"))

    # Failed reconciliations are retried by kopf, never inside a handler
    settings.execution.min_retry_delay = 1.0
    settings.execution.max_retry_delay = 60.0
    settings.execution.retry_backoff = 2.0
    settings.execution.backoff_jitter = 0.1

    metrics_port = int(os.getenv("METRICS_PORT", "8080"))
    server = make_server("", metrics_port, health.create_combined_wsgi_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()


@kopf.on.create(API_GROUP_VERSION, KIND_POLICY)
@kopf.on.update(API_GROUP_VERSION, KIND_POLICY)
@kopf.on.resume(API_GROUP_VERSION, KIND_POLICY)
def handle_policy(meta: dict[str, Any], **_: Any) -> None:
    """Handle Policy resource reconciliation."""
    run_handler(PolicyReconciler(get_store()), meta.get("namespace", "default"), meta["name"], meta.get("uid", ""))


@kopf.on.create(API_GROUP_VERSION, KIND_CONDITION)
@kopf.on.update(API_GROUP_VERSION, KIND_CONDITION)
@kopf.on.resume(API_GROUP_VERSION, KIND_CONDITION)
def handle_condition(meta: dict[str, Any], **_: Any) -> None:
    """Handle NrqlAlertCondition resource reconciliation."""
    run_handler(
        ConditionReconciler(get_store()), meta.get("namespace", "default"), meta["name"], meta.get("uid", "")
    )


@kopf.on.create(API_GROUP_VERSION, KIND_CHANNEL)
@kopf.on.update(API_GROUP_VERSION, KIND_CHANNEL)
@kopf.on.resume(API_GROUP_VERSION, KIND_CHANNEL)
def handle_channel(meta: dict[str, Any], **_: Any) -> None:
    """Handle AlertsChannel resource reconciliation."""
    run_handler(ChannelReconciler(get_store()), meta.get("namespace", "default"), meta["name"], meta.get("uid", ""))


# Deletion runs through the same reconcilers, guarded by their own finalizers
@kopf.on.delete(API_GROUP_VERSION, KIND_POLICY, optional=True)
def handle_policy_delete(meta: dict[str, Any], **_: Any) -> None:
    """Handle Policy resource deletion."""
    run_handler(PolicyReconciler(get_store()), meta.get("namespace", "default"), meta["name"], meta.get("uid", ""))


@kopf.on.delete(API_GROUP_VERSION, KIND_CONDITION, optional=True)
def handle_condition_delete(meta: dict[str, Any], **_: Any) -> None:
    """Handle NrqlAlertCondition resource deletion."""
    run_handler(
        ConditionReconciler(get_store()), meta.get("namespace", "default"), meta["name"], meta.get("uid", "")
    )


@kopf.on.delete(API_GROUP_VERSION, KIND_CHANNEL, optional=True)
def handle_channel_delete(meta: dict[str, Any], **_: Any) -> None:
    """Handle AlertsChannel resource deletion."""
    run_handler(ChannelReconciler(get_store()), meta.get("namespace", "default"), meta["name"], meta.get("uid", ""))
