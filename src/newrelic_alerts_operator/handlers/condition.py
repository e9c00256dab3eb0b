"""Reconciler for NrqlAlertCondition resources."""

from __future__ import annotations

from .. import metrics
from ..builders.alerts import create_alerts_client
from ..constants import CONDITION_FINALIZER, KIND_CONDITION
from ..models import ConditionStatus, NrqlAlertCondition
from ..store import ObjectStore
from ..tracing import trace_span
from ..utils.context import ReconcileContext
from ..utils.errors import DependencyNotReadyError, NewRelicAPIError
from ..utils.events import emit_remote_adopted, emit_remote_created, emit_remote_updated
from .base import BaseReconciler, ClientFactory


class ConditionReconciler(BaseReconciler):
    """Keeps one NRQL alert condition in New Relic in line with its resource."""

    resource_type = NrqlAlertCondition

    def __init__(self, store: ObjectStore, client_factory: ClientFactory = create_alerts_client):
        super().__init__(KIND_CONDITION, store, client_factory, CONDITION_FINALIZER)

    def sync(self, condition: NrqlAlertCondition, ctx: ReconcileContext) -> None:
        policy_id = condition.spec.existing_policy_id
        if policy_id == 0:
            raise DependencyNotReadyError(
                f"condition {condition.name} has no policy id yet, waiting for the parent policy"
            )

        condition_id = condition.status.condition_id
        if condition_id == 0:
            condition_id = self.discover(condition, ctx, policy_id)

        with trace_span("sync_nrql_condition", kind=self.kind, attributes={"policy.id": policy_id}):
            if condition_id == 0:
                operation = "create"
                try:
                    condition_id = ctx.client.create_nrql_condition(policy_id, condition.spec.to_api()).id
                except NewRelicAPIError as e:
                    self._remote_failed(condition, ctx, operation, e, policy_id=policy_id)
                    raise
                emit_remote_created(condition.metadata.as_event_target(self.kind), "condition", condition_id)
            else:
                operation = "update"
                try:
                    updated = ctx.client.update_nrql_condition(condition.spec.to_api(condition_id))
                except NewRelicAPIError as e:
                    self._remote_failed(condition, ctx, operation, e, condition_id=condition_id)
                    raise
                condition_id = updated.id or condition_id
                emit_remote_updated(condition.metadata.as_event_target(self.kind), "condition", condition_id)

        metrics.remote_operations_total.labels(kind=self.kind, operation=operation, result="success").inc()
        condition.status = ConditionStatus(condition_id=condition_id, applied_spec=condition.spec)
        self.persist(condition)

    def _remote_failed(self, condition: NrqlAlertCondition, ctx: ReconcileContext, operation: str,
                       error: Exception, **ids: int) -> None:
        metrics.remote_operations_total.labels(kind=self.kind, operation=operation, result="failed").inc()
        self.log_remote_failure(condition, ctx, f"Failed to {operation} NRQL condition via New Relic API", error,
                                **ids)

    def discover(self, condition: NrqlAlertCondition, ctx: ReconcileContext, policy_id: int) -> int:
        """Find a condition with the same name under the policy, returning 0 when there is none."""
        try:
            existing = ctx.client.list_nrql_conditions(policy_id)
        except NewRelicAPIError as e:
            self.log_remote_failure(condition, ctx, "Failed to list existing NRQL conditions", e,
                                    policy_id=policy_id)
            raise

        for remote in existing:
            if remote.name == condition.spec.name:
                emit_remote_adopted(condition.metadata.as_event_target(self.kind), "condition", remote.id)
                return remote.id
        return 0

    def finalize(self, condition: NrqlAlertCondition, ctx: ReconcileContext) -> None:
        if not condition.metadata.has_finalizer(self.finalizer):
            return

        condition_id = condition.status.condition_id
        if condition_id != 0:
            self.delete_remote(condition, ctx, "condition", condition_id, ctx.client.delete_nrql_condition)
        self.remove_finalizer(condition)
