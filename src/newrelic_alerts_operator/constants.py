"""Constants for the New Relic Alerts Operator."""

import os

# API Group
API_GROUP = "nr.k8s.newrelic.com"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_POLICY = "Policy"
KIND_CONDITION = "NrqlAlertCondition"
KIND_CHANNEL = "AlertsChannel"

# Plurals used by the custom objects API
PLURALS = {
    KIND_POLICY: "policies",
    KIND_CONDITION: "nrqlalertconditions",
    KIND_CHANNEL: "alertschannels",
}

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"
LABEL_POLICY_NAME = f"{API_GROUP}/policy-name"

# Finalizers
POLICY_FINALIZER = f"policies.finalizers.{API_GROUP}"
CONDITION_FINALIZER = f"nrqlalertconditions.finalizers.{API_GROUP}"
CHANNEL_FINALIZER = f"alertschannels.finalizers.{API_GROUP}"

# Controller identity
CONTROLLER_NAME = "newrelic-alerts-operator"

# Regions
REGION_US = "US"
REGION_EU = "EU"
REGION_BASE_URLS = {
    REGION_US: os.getenv("NEW_RELIC_API_URL_US", "https://api.newrelic.com/v2"),
    REGION_EU: os.getenv("NEW_RELIC_API_URL_EU", "https://api.eu.newrelic.com/v2"),
}
REQUEST_TIMEOUT_SECONDS = float(os.getenv("NEW_RELIC_REQUEST_TIMEOUT_SECONDS", "30"))

# A 404 from a remote delete is fatal unless this is switched on
TREAT_REMOTE_NOT_FOUND_AS_DELETED = os.getenv("TREAT_REMOTE_NOT_FOUND_AS_DELETED", "false").lower() == "true"

# Incident preferences
INCIDENT_PREFERENCES = ("PER_POLICY", "PER_CONDITION", "PER_CONDITION_AND_TARGET")

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_CREATED = "Created"
EVENT_REASON_UPDATED = "Updated"
EVENT_REASON_DELETED = "Deleted"
EVENT_REASON_ADOPTED = "Adopted"
