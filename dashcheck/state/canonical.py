"""Deterministic canonical text for nested values, and cheap signatures over it."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Iterable

_PRECISION = 6


def canonicalize(value: Any) -> str:
    """Render ``value`` as a stable string.

    Mappings collapse to their value-like field (``value``, then ``y``, then
    ``x``) so that point objects from different chart libraries line up;
    other mappings render with sorted keys.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        for field in ("value", "y", "x"):
            if field in value:
                return canonicalize(value[field])
        keys = sorted(str(k) for k in value.keys())
        inner = ",".join(f"{k}:{canonicalize(value[k])}" for k in keys)
        return "{" + inner + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonicalize(v) for v in value) + "]"
    return str(value)


def _number(value: int | float) -> str:
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return f"{number:.{_PRECISION}f}"


def hash_string(text: Any) -> str:
    """32-bit djb2 hash as lowercase hex."""
    h = 5381
    for ch in str(text or ""):
        h = ((h << 5) + h + ord(ch)) & 0xFFFFFFFF
    return format(h, "x")


def signature(values: Iterable[Any] | None) -> str:
    """``"{count}:{hash}"`` over the pipe-joined canonical values."""
    items = list(values) if values is not None else []
    joined = "|".join(canonicalize(v) for v in items)
    return f"{len(items)}:{hash_string(joined)}"
