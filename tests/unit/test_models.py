"""Tests for the custom resource models."""

from __future__ import annotations

from conftest import condition_entry, policy_body
from newrelic_alerts_operator.models import (
    AlertsChannel,
    ChannelSpec,
    ConditionSpec,
    ObjectMeta,
    Policy,
    PolicyCondition,
    PolicySpec,
)


class TestPolicySpec:
    """Test cases for PolicySpec parsing and comparison."""

    def test_from_dict(self):
        spec = PolicySpec.from_dict(policy_body(conditions=[condition_entry("cpu")])["spec"])
        assert spec.name == "my-policy alerts"
        assert spec.incident_preference == "PER_POLICY"
        assert spec.conditions[0].key == "cpu"

    def test_default_incident_preference(self):
        assert PolicySpec.from_dict({"name": "p"}).incident_preference == "PER_POLICY"

    def test_unknown_incident_preference_parsed_as_is(self):
        """Parsing never rejects a value, so a deleting object can still be read."""
        spec = PolicySpec.from_dict({"name": "p", "incident_preference": "SOMETIMES"})
        assert spec.incident_preference == "SOMETIMES"

    def test_bare_condition_spec_accepted(self):
        spec = PolicySpec.from_dict({"name": "p", "conditions": [condition_entry("cpu")["spec"]]})
        assert spec.conditions[0].key == "cpu"

    def test_resource_name_ignored_in_comparison(self):
        cond = ConditionSpec.from_dict(condition_entry("cpu")["spec"])
        a = PolicySpec(name="p", conditions=(PolicyCondition(cond, resource_name="p123"),))
        b = PolicySpec(name="p", conditions=(PolicyCondition(cond),))
        assert a == b

    def test_condition_order_matters_for_equality(self):
        cpu = PolicyCondition(ConditionSpec.from_dict(condition_entry("cpu")["spec"]))
        errors = PolicyCondition(ConditionSpec.from_dict(condition_entry("errors")["spec"]))
        assert PolicySpec(name="p", conditions=(cpu, errors)) != PolicySpec(name="p", conditions=(errors, cpu))

    def test_to_api(self):
        api = PolicySpec(name="p", incident_preference="PER_CONDITION").to_api(7)
        assert api.to_payload() == {"policy": {"name": "p", "incident_preference": "PER_CONDITION"}}
        assert api.id == 7


class TestConditionSpec:
    """Test cases for ConditionSpec."""

    def test_quantities_normalized(self):
        a = ConditionSpec.from_dict(condition_entry("cpu", threshold=5)["spec"])
        b = ConditionSpec.from_dict(condition_entry("cpu", threshold=5.0)["spec"])
        assert a == b
        assert a.terms[0].threshold == "5"

    def test_semantic_dict_drops_parent_fields(self):
        spec = ConditionSpec.from_dict({"name": "cpu", "existing_policy_id": 4, "api_key": "k", "region": "EU"})
        data = spec.semantic_dict()
        for key in ("existing_policy_id", "api_key", "api_key_secret", "region"):
            assert key not in data

    def test_to_api_maps_type_and_timer(self):
        spec = ConditionSpec.from_dict({**condition_entry("cpu")["spec"], "violation_close_timer": 3600})
        api = spec.to_api(9)
        assert api.id == 9
        assert api.type == "static"
        assert api.violation_time_limit_seconds == 3600
        assert api.to_payload()["nrql_condition"]["terms"][0]["threshold"] == "5"


class TestChannelSpec:
    """Test cases for ChannelSpec."""

    def test_configuration_order_irrelevant(self):
        a = ChannelSpec.from_dict({"name": "c", "type": "email", "configuration": {"a": "1", "b": "2"}})
        b = ChannelSpec.from_dict({"name": "c", "type": "email", "configuration": {"b": "2", "a": "1"}})
        assert a == b

    def test_nested_configuration_round_trip(self):
        config = {"headers": {"X-Team": "sre"}, "recipients": ["a@example.com", "b@example.com"]}
        spec = ChannelSpec.from_dict({"name": "c", "type": "webhook", "configuration": config})
        assert spec.to_dict()["configuration"] == config
        assert spec.to_api().configuration == config


class TestObjectMeta:
    """Test cases for ObjectMeta."""

    def test_unknown_fields_preserved(self):
        raw = {"name": "p", "namespace": "ns", "annotations": {"a": "b"}, "resourceVersion": "3"}
        meta = ObjectMeta.from_dict(raw)
        out = meta.to_dict()
        assert out["annotations"] == {"a": "b"}
        assert out["resourceVersion"] == "3"

    def test_deleting_and_finalizers(self):
        meta = ObjectMeta.from_dict({"name": "p", "finalizers": ["f"], "deletionTimestamp": "2024-01-01T00:00:00Z"})
        assert meta.is_deleting
        assert meta.has_finalizer("f")
        assert not ObjectMeta(name="p").is_deleting


class TestResource:
    """Test cases for resource body conversion."""

    def test_policy_not_synced_without_status(self):
        assert not Policy.from_body(policy_body()).is_synced()

    def test_policy_synced_after_round_trip(self):
        body = policy_body(conditions=[condition_entry("cpu")])
        policy = Policy.from_body(body)
        body["status"] = {"policy_id": 3, "applied_spec": policy.spec.to_dict()}
        assert Policy.from_body(body).is_synced()

    def test_to_body(self):
        channel = AlertsChannel.from_body({"metadata": {"name": "c"}, "spec": {"name": "c", "type": "email"}})
        body = channel.to_body()
        assert body["kind"] == "AlertsChannel"
        assert body["apiVersion"] == "nr.k8s.newrelic.com/v1"
        assert body["status"] == {"channel_id": 0, "applied_spec": None}
