"""Tests for span helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from newrelic_alerts_operator import tracing
from newrelic_alerts_operator.utils.errors import NewRelicAPIError


class TestTraceSpan:
    """Test cases for trace_span."""

    def test_no_tracer_yields_none(self):
        with patch.object(tracing, "_tracer", None):
            with tracing.trace_span("create_policy") as span:
                assert span is None

    def test_kind_added_to_attributes(self):
        tracer = MagicMock()
        with patch.object(tracing, "_tracer", tracer):
            with tracing.trace_span("create_policy", kind="Policy", attributes={"policy.name": "ops"}):
                pass

        tracer.start_as_current_span.assert_called_once_with(
            "create_policy", attributes={"policy.name": "ops", "resource.kind": "Policy"}
        )

    def test_api_error_recorded_on_span(self):
        tracer = MagicMock()
        span = tracer.start_as_current_span.return_value.__enter__.return_value
        error = NewRelicAPIError(422, "invalid nrql", operation="create_nrql_condition")

        with patch.object(tracing, "_tracer", tracer):
            with pytest.raises(NewRelicAPIError):
                with tracing.trace_span("sync_nrql_condition"):
                    raise error

        span.set_attribute.assert_any_call("newrelic.status_code", 422)
        span.set_attribute.assert_any_call("newrelic.operation", "create_nrql_condition")
        span.record_exception.assert_called_once_with(error)


class TestInitializeTracing:
    """Test cases for initialize_tracing."""

    def test_disabled_by_env(self, monkeypatch):
        monkeypatch.setenv("OTEL_TRACES_ENABLED", "false")
        with patch.object(tracing, "_tracer", None), patch.object(tracing.trace, "set_tracer_provider") as set_provider:
            tracing.initialize_tracing()
            assert tracing.get_tracer() is None
        set_provider.assert_not_called()
