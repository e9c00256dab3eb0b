"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock

from newrelic_alerts_operator.health import create_combined_wsgi_app


def _environ(path: str) -> dict:
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
    }


class TestCombinedWsgiApp:
    """Test cases for the combined metrics and health app."""

    def test_healthz(self):
        """Test /healthz endpoint."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        body = b"".join(app(_environ("/healthz"), start_response))

        assert b'"status":"ok"' in body
        assert "200" in start_response.call_args[0][0]

    def test_readyz(self):
        """Test /readyz endpoint."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        body = b"".join(app(_environ("/readyz"), start_response))

        assert b'"status":"ready"' in body

    def test_metrics_delegated_to_prometheus(self):
        """Test that other paths are served by the prometheus app."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()
        environ = _environ("/metrics")
        environ["QUERY_STRING"] = ""

        body = b"".join(app(environ, start_response))

        assert b"newrelic_alerts_operator_reconcile_total" in body or b"# HELP" in body
        assert "200" in start_response.call_args[0][0]
