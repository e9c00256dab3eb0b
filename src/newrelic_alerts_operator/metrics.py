"""Prometheus metrics for the New Relic Alerts Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "newrelic_alerts_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "newrelic_alerts_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "newrelic_alerts_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "newrelic_alerts_operator_resource_status_total",
    "Resource status transitions observed at the end of a reconciliation",
    ["kind", "status"],
)

# Remote alerting operations (create/update/delete/adopt)
remote_operations_total = Counter(
    "newrelic_alerts_operator_remote_operations_total",
    "Total number of remote New Relic mutations",
    ["kind", "operation", "result"],
)

# Spec drift against the last applied snapshot
drift_detected_total = Counter(
    "newrelic_alerts_operator_drift_detected_total",
    "Total number of reconciliations that found spec != appliedSpec",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "newrelic_alerts_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "newrelic_alerts_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
