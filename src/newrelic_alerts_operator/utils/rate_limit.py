"""Client-side throttling for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])


class RateLimiter:
    """Spaces calls so that at most `per_second` of them start every second.

    Calls are only delayed, never retried: a failed call is surfaced to the
    caller and retried by the next reconciliation.
    """

    def __init__(self, per_second: float):
        self.min_interval = 1.0 / per_second if per_second > 0 else 0.0
        self._last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_call_time
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last_call_time = time.monotonic()

    def __call__(self, func: _F) -> _F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.wait()
            return func(*args, **kwargs)

        return wrapper  # type: ignore


k8s_limiter = RateLimiter(float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0")))
newrelic_limiter = RateLimiter(float(os.getenv("NEW_RELIC_RATE_LIMIT_PER_SECOND", "5.0")))
