"""Content hashing used to name generated NrqlAlertCondition resources."""

from __future__ import annotations

import json

from ..models import ConditionSpec

FNV32_OFFSET_BASIS = 0x811C9DC5
FNV32_PRIME = 0x01000193


def fnv1a_32(data: bytes) -> int:
    """32-bit FNV-1a hash."""
    value = FNV32_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * FNV32_PRIME) & 0xFFFFFFFF
    return value


def compute_hash(spec: ConditionSpec) -> int:
    """Hash the user-authored content of a condition spec.

    Values copied down from the parent policy are left out, so the same
    condition declared under the same policy always hashes the same way.
    """
    canonical = json.dumps(spec.semantic_dict(), sort_keys=True, separators=(",", ":"))
    return fnv1a_32(canonical.encode("utf-8"))


def condition_resource_name(parent_name: str, spec: ConditionSpec) -> str:
    """Name of the child resource generated for a condition of `parent_name`."""
    return f"{parent_name}{compute_hash(spec)}"
