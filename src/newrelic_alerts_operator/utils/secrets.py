"""Resolution of New Relic API keys from inline values or Kubernetes secrets."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import NotFoundError, sanitize_exception

logger = logging.getLogger(__name__)


def get_secret_value(
    store: Any,
    namespace: str,
    secret_name: str,
    key: str,
) -> str:
    """Get a value from a Kubernetes secret.

    Args:
        store: Object store used to read the secret
        namespace: Namespace of the secret
        secret_name: Name of the secret
        key: Key in the secret

    Returns:
        Secret value decoded as UTF-8

    Raises:
        ValueError: If secret or key not found
    """
    try:
        data = store.get_secret(namespace, secret_name)
    except NotFoundError as e:
        raise ValueError(f"Secret '{secret_name}' not found in namespace '{namespace}'") from e

    if key not in data:
        raise ValueError(f"Key '{key}' not found in secret '{secret_name}'")

    value = data[key]
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


def resolve_api_key(
    store: Any,
    spec: Any,
    namespace: str,
    on_error: Callable[[str, Exception], None] | None = None,
) -> str:
    """Return the API key for a resource spec, or "" when none can be resolved.

    An inline `api_key` wins. Otherwise the secret named by `api_key_secret` is
    read (in the resource's namespace unless the reference names one). Lookup
    failures are reported through `on_error` and yield "", which callers treat
    as fatal for the current reconciliation. Nothing is cached.
    """
    if spec.api_key:
        return spec.api_key

    secret_ref = spec.api_key_secret
    if not secret_ref:
        return ""

    secret_ns = secret_ref.namespace or namespace
    try:
        return get_secret_value(store, secret_ns, secret_ref.name, secret_ref.key_name)
    except Exception as e:
        message = f"Failed to retrieve API key secret {secret_ns}/{secret_ref.name}"
        if on_error is not None:
            on_error(message, e)
        else:
            logger.error(f"{message}: {sanitize_exception(e)}")
        return ""
