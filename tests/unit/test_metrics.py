"""Tests for Prometheus metrics."""

from __future__ import annotations

from prometheus_client import REGISTRY

from newrelic_alerts_operator.metrics import (
    api_call_duration_seconds,
    api_call_total,
    drift_detected_total,
    error_total,
    reconcile_duration_seconds,
    reconcile_total,
    remote_operations_total,
    resource_status_total,
)


class TestMetricsExist:
    """Test that all expected metrics are defined."""

    def test_reconcile_total_exists(self):
        # Prometheus counters don't include "_total" in their _name attribute
        assert reconcile_total._name == "newrelic_alerts_operator_reconcile"

    def test_reconcile_duration_exists(self):
        assert reconcile_duration_seconds._name == "newrelic_alerts_operator_reconcile_duration_seconds"

    def test_remote_operations_total_exists(self):
        assert remote_operations_total._name == "newrelic_alerts_operator_remote_operations"

    def test_other_metrics_exist(self):
        assert error_total._name == "newrelic_alerts_operator_error"
        assert resource_status_total._name == "newrelic_alerts_operator_resource_status"
        assert drift_detected_total._name == "newrelic_alerts_operator_drift_detected"
        assert api_call_total._name == "newrelic_alerts_operator_api_call"
        assert api_call_duration_seconds._name == "newrelic_alerts_operator_api_call_duration_seconds"


class TestMetricsRecording:
    """Test that metrics record labelled samples."""

    def test_reconcile_total_increments(self):
        labels = {"kind": "Policy", "result": "success"}
        before = REGISTRY.get_sample_value("newrelic_alerts_operator_reconcile_total", labels) or 0.0

        reconcile_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("newrelic_alerts_operator_reconcile_total", labels) == before + 1

    def test_remote_operations_labels(self):
        labels = {"kind": "AlertsChannel", "operation": "create", "result": "failed"}
        before = REGISTRY.get_sample_value("newrelic_alerts_operator_remote_operations_total", labels) or 0.0

        remote_operations_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("newrelic_alerts_operator_remote_operations_total", labels) == before + 1

    def test_duration_histogram_observes(self):
        labels = {"kind": "NrqlAlertCondition"}
        before = REGISTRY.get_sample_value("newrelic_alerts_operator_reconcile_duration_seconds_count", labels) or 0.0

        reconcile_duration_seconds.labels(**labels).observe(0.3)

        after = REGISTRY.get_sample_value("newrelic_alerts_operator_reconcile_duration_seconds_count", labels)
        assert after == before + 1
