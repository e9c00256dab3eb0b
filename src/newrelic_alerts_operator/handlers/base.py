"""Base reconciler with the lifecycle shared by all custom resources."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import kopf

from .. import metrics
from ..constants import CONTROLLER_NAME, TREAT_REMOTE_NOT_FOUND_AS_DELETED
from ..logging import log_resource_event
from ..models import ObjectMeta, Resource
from ..services.newrelic.base import AlertsClient
from ..store import ObjectStore
from ..tracing import trace_span
from ..utils.context import ReconcileContext, get_correlation_id, with_correlation_id
from ..utils.errors import (
    ConflictError,
    CredentialsError,
    DependencyNotReadyError,
    NewRelicAPIError,
    NotFoundError,
    ValidationError,
    partial_api_key,
    sanitize_exception,
)
from ..utils.events import emit_reconcile_failed, emit_reconcile_started, emit_remote_deleted
from ..utils.secrets import resolve_api_key

ClientFactory = Callable[[str, str], AlertsClient]


class BaseReconciler:
    """Level-triggered reconciler for one custom resource kind.

    `reconcile()` re-reads the object, resolves credentials, builds a fresh
    alerts client and then either runs the deletion protocol or converges the
    remote object towards the spec. Subclasses implement `sync` and `finalize`.
    """

    resource_type: type[Resource]

    def __init__(
        self,
        kind: str,
        store: ObjectStore,
        client_factory: ClientFactory,
        finalizer: str,
    ):
        """Initialize base reconciler.

        Args:
            kind: The Kubernetes resource kind (e.g., "Policy", "AlertsChannel")
            store: Object store holding the custom resources and secrets
            client_factory: Builds an alerts client from (api_key, region)
            finalizer: Finalizer guarding remote cleanup of this kind
        """
        self.kind = kind
        self.store = store
        self.client_factory = client_factory
        self.finalizer = finalizer
        self.logger = logging.getLogger(__name__)

    # Structured logging

    def _log(self, level: int, meta: ObjectMeta, message: str, event: str, reason: str, **kwargs: Any) -> None:
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=meta.name,
            namespace=meta.namespace,
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(self, meta: ObjectMeta, message: str, event: str = "info", reason: str = "Info", **kwargs: Any) -> None:
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self, meta: ObjectMeta, message: str, event: str = "warning", reason: str = "Warning", **kwargs: Any
    ) -> None:
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: ObjectMeta,
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        if error is not None:
            kwargs["error"] = sanitize_exception(error)
            kwargs["error_type"] = type(error).__name__
        self._log(logging.ERROR, meta, message, event, reason, **kwargs)

    def log_remote_failure(
        self,
        resource: Resource,
        ctx: ReconcileContext,
        message: str,
        error: Exception,
        **kwargs: Any,
    ) -> None:
        """Log a failed New Relic call with the fields needed to debug it."""
        self.log_error(
            resource.metadata,
            message,
            error=error,
            reason="RemoteCallFailed",
            region=ctx.region,
            partial_key=partial_api_key(ctx.api_key),
            **kwargs,
        )

    # Lifecycle helpers

    def fetch(self, namespace: str, name: str) -> Resource | None:
        """Read the resource, returning None when it no longer exists."""
        try:
            body = self.store.get(self.kind, namespace, name)
        except NotFoundError:
            self.log_info(
                ObjectMeta(name=name, namespace=namespace),
                f"{self.kind} not found after being deleted, nothing to do",
                reason="NotFound",
            )
            return None
        return self.resource_type.from_body(body)

    def build_context(self, resource: Resource) -> ReconcileContext:
        """Resolve credentials and build the alerts client for this invocation."""
        api_key = resolve_api_key(
            self.store,
            resource.spec,
            resource.namespace,
            on_error=lambda msg, e: self.log_error(resource.metadata, msg, error=e, reason="SecretLookupFailed"),
        )
        if not api_key:
            raise CredentialsError("api key is blank")

        try:
            client = self.client_factory(api_key, resource.spec.region)
        except Exception as e:
            self.log_error(resource.metadata, "Failed to create alerts client", error=e, reason="ClientFailed")
            raise

        return ReconcileContext(
            api_key=api_key,
            client=client,
            region=resource.spec.region,
            correlation_id=get_correlation_id() or "",
        )

    def persist(self, resource: Resource) -> None:
        """Write the resource back and pick up its new resourceVersion."""
        try:
            body = self.store.update(self.kind, resource.to_body())
        except Exception as e:
            self.log_error(resource.metadata, f"Failed to update {self.kind} in the object store", error=e,
                           reason="StoreUpdateFailed")
            raise
        resource.metadata = ObjectMeta.from_dict(body.get("metadata") or {})

    def ensure_finalizer(self, resource: Resource) -> None:
        """Add the finalizer guard when missing. No remote call is made."""
        if resource.metadata.has_finalizer(self.finalizer):
            return
        resource.metadata.finalizers.append(self.finalizer)
        self.persist(resource)

    def remove_finalizer(self, resource: Resource) -> None:
        """Lift the finalizer guard so the object store can drop the resource."""
        if not resource.metadata.has_finalizer(self.finalizer):
            return
        resource.metadata.finalizers.remove(self.finalizer)
        self.persist(resource)

    def delete_remote(
        self,
        resource: Resource,
        ctx: ReconcileContext,
        what: str,
        remote_id: int,
        delete_fn: Callable[[int], None],
    ) -> None:
        """Delete a remote object, surfacing failures to the caller.

        A 404 is an error like any other unless TREAT_REMOTE_NOT_FOUND_AS_DELETED
        is set.
        """
        with trace_span(f"delete_{what}", kind=self.kind, attributes={"remote.id": remote_id}):
            try:
                delete_fn(remote_id)
            except NewRelicAPIError as e:
                if e.is_not_found and TREAT_REMOTE_NOT_FOUND_AS_DELETED:
                    self.log_warning(resource.metadata, f"New Relic {what} {remote_id} already gone",
                                     reason="RemoteNotFound", remote_id=remote_id)
                    return
                metrics.remote_operations_total.labels(kind=self.kind, operation="delete", result="failed").inc()
                self.log_remote_failure(resource, ctx, f"Failed to delete {what} via New Relic API", e,
                                        remote_id=remote_id)
                raise

        metrics.remote_operations_total.labels(kind=self.kind, operation="delete", result="success").inc()
        emit_remote_deleted(resource.metadata.as_event_target(self.kind), what, remote_id)
        self.log_info(resource.metadata, f"Deleted New Relic {what} {remote_id}", reason="RemoteDeleted",
                      remote_id=remote_id)

    # Reconciliation

    def reconcile(self, namespace: str, name: str) -> None:
        """Run one reconciliation pass for namespace/name."""
        resource = self.fetch(namespace, name)
        if resource is None:
            return

        ctx = self.build_context(resource)

        if resource.metadata.is_deleting:
            self.finalize(resource, ctx)
            return

        self.ensure_finalizer(resource)

        if resource.is_synced():
            self.log_info(resource.metadata, f"{self.kind} already in sync", reason="InSync")
            return

        metrics.drift_detected_total.labels(kind=self.kind).inc()
        self.log_info(resource.metadata, f"Reconciling {self.kind}", reason="Reconciling")
        self.sync(resource, ctx)
        metrics.resource_status_total.labels(kind=self.kind, status="synced").inc()

    def sync(self, resource: Any, ctx: ReconcileContext) -> None:
        raise NotImplementedError

    def finalize(self, resource: Any, ctx: ReconcileContext) -> None:
        raise NotImplementedError

    def reconcile_with_metrics(self, namespace: str, name: str, uid: str = "") -> None:
        """Execute reconciliation with metrics, tracing, events and error logging."""
        meta = ObjectMeta(name=name, namespace=namespace, uid=uid)
        target = meta.as_event_target(self.kind)

        with with_correlation_id():
            emit_reconcile_started(target)
            metrics.reconcile_total.labels(kind=self.kind, result="started").inc()

            start_time = time.time()
            try:
                with trace_span(f"reconcile_{self.kind.lower()}", kind=self.kind,
                                attributes={"resource.name": name, "resource.namespace": namespace}):
                    self.reconcile(namespace, name)
                metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
            except Exception as e:
                sanitized_error = sanitize_exception(e)
                metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
                self.log_error(meta, "Reconciliation failed", error=e, reason="ReconciliationFailed")
                emit_reconcile_failed(target, f"Reconciliation failed: {sanitized_error}")
                metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
                raise
            finally:
                duration = time.time() - start_time
                metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)


def run_handler(reconciler: BaseReconciler, namespace: str, name: str, uid: str = "") -> None:
    """Run a reconciler from a kopf handler, mapping errors to kopf's retry semantics."""
    try:
        reconciler.reconcile_with_metrics(namespace, name, uid)
    except ConflictError as e:
        raise kopf.TemporaryError(str(e), delay=1) from e
    except DependencyNotReadyError as e:
        raise kopf.TemporaryError(str(e), delay=10) from e
    except ValidationError as e:
        raise kopf.PermanentError(str(e)) from e
