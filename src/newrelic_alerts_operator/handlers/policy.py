"""Reconciler for Policy resources and the NrqlAlertCondition children they own."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from .. import metrics
from ..builders.alerts import create_alerts_client
from ..constants import (
    API_GROUP_VERSION,
    CONTROLLER_NAME,
    INCIDENT_PREFERENCES,
    KIND_CONDITION,
    KIND_POLICY,
    LABEL_MANAGED_BY,
    LABEL_POLICY_NAME,
    POLICY_FINALIZER,
)
from ..models import (
    ConditionSpec,
    ConditionStatus,
    NrqlAlertCondition,
    ObjectMeta,
    Policy,
    PolicyCondition,
    PolicyStatus,
)
from ..store import ObjectStore
from ..tracing import trace_span
from ..utils.context import ReconcileContext
from ..utils.errors import ConflictError, NewRelicAPIError, NotFoundError, ValidationError
from ..utils.events import emit_remote_adopted, emit_remote_created, emit_remote_updated
from ..utils.hashing import condition_resource_name
from .base import BaseReconciler, ClientFactory


def validate_policy(policy: Policy) -> None:
    """Reject specs whose conditions cannot be matched by name."""
    if not policy.spec.name:
        raise ValidationError("policy name is required")

    preference = policy.spec.incident_preference
    if preference not in INCIDENT_PREFERENCES:
        raise ValidationError(
            f"incident_preference must be one of {', '.join(INCIDENT_PREFERENCES)}, got {preference!r}"
        )

    seen: set[str] = set()
    for condition in policy.spec.conditions:
        if not condition.key:
            raise ValidationError("every condition needs a name")
        if condition.key in seen:
            raise ValidationError(f"duplicate condition name {condition.key!r}")
        seen.add(condition.key)


class PolicyReconciler(BaseReconciler):
    """Converges a remote alert policy and fans its conditions out to child resources."""

    resource_type = Policy

    def __init__(self, store: ObjectStore, client_factory: ClientFactory = create_alerts_client):
        super().__init__(KIND_POLICY, store, client_factory, POLICY_FINALIZER)

    def sync(self, policy: Policy, ctx: ReconcileContext) -> None:
        validate_policy(policy)

        policy_id = policy.status.policy_id
        if policy_id == 0:
            policy_id = self.discover(policy, ctx)

        if policy_id == 0:
            policy_id = self.create_remote(policy, ctx)
        else:
            policy_id = self.update_remote(policy, ctx, policy_id)

        applied_conditions = self.sync_conditions(policy, policy_id)

        # Only reached when every step above succeeded
        policy.status = PolicyStatus(
            policy_id=policy_id,
            applied_spec=replace(policy.spec, conditions=applied_conditions),
        )
        self.persist(policy)
        self.log_info(policy.metadata, f"Policy synced with New Relic policy {policy_id}", reason="Synced",
                      policy_id=policy_id)

    def discover(self, policy: Policy, ctx: ReconcileContext) -> int:
        """Return the id of a remote policy with exactly the same name, or 0."""
        try:
            existing = ctx.client.list_policies(policy.spec.name)
        except NewRelicAPIError as e:
            self.log_remote_failure(policy, ctx, "Failed to list existing policies", e, policy_name=policy.spec.name)
            raise

        for remote in existing:
            if remote.name == policy.spec.name:
                self.log_info(policy.metadata, f"Adopting existing New Relic policy {remote.id}",
                              reason="Adopted", policy_id=remote.id)
                emit_remote_adopted(policy.metadata.as_event_target(self.kind), "policy", remote.id)
                return remote.id
        return 0

    def create_remote(self, policy: Policy, ctx: ReconcileContext) -> int:
        with trace_span("create_policy", kind=self.kind, attributes={"policy.name": policy.spec.name}):
            try:
                created = ctx.client.create_policy(policy.spec.to_api())
            except NewRelicAPIError as e:
                metrics.remote_operations_total.labels(kind=self.kind, operation="create", result="failed").inc()
                self.log_remote_failure(policy, ctx, "Failed to create policy via New Relic API", e,
                                        policy_name=policy.spec.name)
                raise

        metrics.remote_operations_total.labels(kind=self.kind, operation="create", result="success").inc()
        emit_remote_created(policy.metadata.as_event_target(self.kind), "policy", created.id)
        return created.id

    def update_remote(self, policy: Policy, ctx: ReconcileContext, policy_id: int) -> int:
        with trace_span("update_policy", kind=self.kind, attributes={"policy.id": policy_id}):
            try:
                updated = ctx.client.update_policy(policy.spec.to_api(policy_id))
            except NewRelicAPIError as e:
                metrics.remote_operations_total.labels(kind=self.kind, operation="update", result="failed").inc()
                self.log_remote_failure(policy, ctx, "Failed to update policy via New Relic API", e,
                                        policy_id=policy_id)
                raise

        metrics.remote_operations_total.labels(kind=self.kind, operation="update", result="success").inc()
        new_id = updated.id or policy_id
        emit_remote_updated(policy.metadata.as_event_target(self.kind), "policy", new_id)
        return new_id

    # Condition fan-out

    def sync_conditions(self, policy: Policy, policy_id: int) -> tuple[PolicyCondition, ...]:
        """Create, update or delete child resources so they match the declared conditions.

        Conditions are matched by name, so reordering the list changes nothing.

        Returns:
            The applied conditions, in declared order, with their resource names
        """
        applied_spec = policy.status.applied_spec
        applied = {c.key: c for c in applied_spec.conditions} if applied_spec is not None else {}
        desired_keys = {c.key for c in policy.spec.conditions}

        parent_changed = applied_spec is None or (
            policy_id != policy.status.policy_id
            or policy.spec.api_key != applied_spec.api_key
            or policy.spec.api_key_secret != applied_spec.api_key_secret
            or policy.spec.region != applied_spec.region
        )

        for key, previous in applied.items():
            if key not in desired_keys:
                self.delete_child(policy, self._child_name(policy, previous))

        result: list[PolicyCondition] = []
        for condition in policy.spec.conditions:
            previous = applied.get(condition.key)
            if previous is None:
                name = self.create_child(policy, condition, policy_id)
            elif parent_changed or not condition.spec.semantic_equal(previous.spec):
                name = self.update_child(policy, self._child_name(policy, previous), condition, policy_id)
            else:
                name = self._child_name(policy, previous)
            result.append(PolicyCondition(spec=condition.spec, resource_name=name))
        return tuple(result)

    @staticmethod
    def _child_name(policy: Policy, condition: PolicyCondition) -> str:
        return condition.resource_name or condition_resource_name(policy.name, condition.spec)

    def _child_spec(self, policy: Policy, condition: PolicyCondition, policy_id: int) -> ConditionSpec:
        return condition.spec.with_parent(
            policy_id,
            policy.spec.api_key,
            policy.spec.api_key_secret,
            policy.spec.region,
        )

    def _owner_reference(self, policy: Policy) -> list[dict[str, Any]]:
        if not policy.metadata.uid:
            return []
        return [
            {
                "apiVersion": API_GROUP_VERSION,
                "kind": KIND_POLICY,
                "name": policy.name,
                "uid": policy.metadata.uid,
                "controller": True,
            }
        ]

    def create_child(self, policy: Policy, condition: PolicyCondition, policy_id: int) -> str:
        """Create the NrqlAlertCondition resource for a newly declared condition."""
        name = condition_resource_name(policy.name, condition.spec)
        child = NrqlAlertCondition(
            metadata=ObjectMeta(
                name=name,
                namespace=policy.namespace,
                labels={
                    **policy.metadata.labels,
                    LABEL_POLICY_NAME: policy.name,
                    LABEL_MANAGED_BY: CONTROLLER_NAME,
                },
                owner_references=self._owner_reference(policy),
            ),
            spec=self._child_spec(policy, condition, policy_id),
            status=ConditionStatus(),
        )

        try:
            self.store.create(KIND_CONDITION, child.to_body())
        except ConflictError:
            # Created by an earlier pass whose status write never landed
            self.log_info(policy.metadata, f"Condition resource {name} already exists, adopting it",
                          reason="ChildAdopted", condition=condition.key)
            return self.update_child(policy, name, condition, policy_id)

        self.log_info(policy.metadata, f"Created condition resource {name}", reason="ChildCreated",
                      condition=condition.key)
        return name

    def update_child(self, policy: Policy, name: str, condition: PolicyCondition, policy_id: int) -> str:
        """Rewrite the spec of an existing child, keeping its name and remote id."""
        try:
            child = NrqlAlertCondition.from_body(self.store.get(KIND_CONDITION, policy.namespace, name))
        except NotFoundError:
            self.log_warning(policy.metadata, f"Condition resource {name} disappeared, recreating it",
                             reason="ChildMissing", condition=condition.key)
            return self.create_child(policy, condition, policy_id)

        child.spec = self._child_spec(policy, condition, policy_id)
        self.store.update(KIND_CONDITION, child.to_body())
        self.log_info(policy.metadata, f"Updated condition resource {name}", reason="ChildUpdated",
                      condition=condition.key)
        return name

    def delete_child(self, policy: Policy, name: str) -> None:
        try:
            self.store.delete(KIND_CONDITION, policy.namespace, name)
        except NotFoundError:
            self.log_info(policy.metadata, f"Condition resource {name} already deleted", reason="ChildGone")
            return
        self.log_info(policy.metadata, f"Deleted condition resource {name}", reason="ChildDeleted")

    # Deletion protocol

    def finalize(self, policy: Policy, ctx: ReconcileContext) -> None:
        if not policy.metadata.has_finalizer(self.finalizer):
            return

        policy_id = policy.status.policy_id
        if policy_id == 0:
            self.log_info(policy.metadata, "Policy was never created in New Relic, releasing it",
                          reason="NothingToDelete")
            self.remove_finalizer(policy)
            return

        applied = policy.status.applied_spec
        for condition in applied.conditions if applied is not None else ():
            self.delete_child(policy, self._child_name(policy, condition))

        self.delete_remote(policy, ctx, "policy", policy_id, ctx.client.delete_policy)
        self.remove_finalizer(policy)
