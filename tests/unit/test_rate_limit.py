"""Tests for rate limiting utilities."""

from __future__ import annotations

from unittest.mock import patch

from newrelic_alerts_operator.utils.rate_limit import RateLimiter, k8s_limiter, newrelic_limiter


class TestRateLimiter:
    """Test cases for RateLimiter."""

    def test_decorator_passes_arguments(self):
        """Test that the decorator keeps the wrapped function's behaviour."""
        limiter = RateLimiter(1000.0)

        @limiter
        def test_func(a, b, c=None):
            return f"{a}-{b}-{c}"

        assert test_func("x", "y", c="z") == "x-y-z"
        assert test_func.__name__ == "test_func"

    def test_first_call_does_not_sleep(self):
        limiter = RateLimiter(1.0)
        with patch("newrelic_alerts_operator.utils.rate_limit.time.sleep") as mock_sleep:
            limiter.wait()
        mock_sleep.assert_not_called()

    def test_second_call_is_spaced(self):
        """Test that calls closer than the minimum interval are delayed."""
        limiter = RateLimiter(2.0)
        with patch("newrelic_alerts_operator.utils.rate_limit.time.sleep") as mock_sleep:
            limiter.wait()
            limiter.wait()
        mock_sleep.assert_called_once()
        assert 0 < mock_sleep.call_args[0][0] <= 0.5

    def test_zero_rate_disables_limiting(self):
        limiter = RateLimiter(0)
        assert limiter.min_interval == 0.0
        with patch("newrelic_alerts_operator.utils.rate_limit.time.sleep") as mock_sleep:
            limiter.wait()
            limiter.wait()
        mock_sleep.assert_not_called()

    def test_exceptions_are_not_retried(self):
        """Test that a failing call is surfaced on the first attempt."""
        limiter = RateLimiter(1000.0)
        calls = []

        @limiter
        def failing():
            calls.append(1)
            raise RuntimeError("remote failure")

        try:
            failing()
        except RuntimeError:
            pass
        assert len(calls) == 1

    def test_module_limiters(self):
        assert k8s_limiter.min_interval > 0
        assert newrelic_limiter.min_interval > 0
