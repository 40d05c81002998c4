"""Show-when condition language: parsing and evaluation.

A condition is a finite tree: leaves ``{var, op, val}`` with ``op`` in
``eq neq in gt lt gte lte``, and combinators ``{op: and|or, conditions}``
or ``{op: not, condition}``. Values are compared as normalized strings,
numeric operators parse both sides as floats.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field

LEAF_OPS = {"eq", "neq", "in", "gt", "lt", "gte", "lte"}

# Same prefix JavaScript's parseFloat accepts.
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


class ConditionError(ValueError):
    """Raised for condition declarations that cannot be parsed."""


class ConditionLeaf(BaseModel):
    var: str
    op: str
    val: Any = None


class ConditionGroup(BaseModel):
    op: str  # and, or
    conditions: list["Condition"] = Field(default_factory=list)


class ConditionNot(BaseModel):
    op: str = "not"
    condition: "Condition"


Condition = Union[ConditionLeaf, ConditionGroup, ConditionNot]

ConditionGroup.model_rebuild()
ConditionNot.model_rebuild()


def parse_condition(raw: Any) -> Condition:
    """Build a condition tree from a JSON string or a decoded dict."""
    if isinstance(raw, (ConditionLeaf, ConditionGroup, ConditionNot)):
        return raw
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConditionError(f"Invalid condition JSON: {e}") from e
    if not isinstance(raw, Mapping):
        raise ConditionError(f"Condition must be an object, got {type(raw).__name__}")

    op = str(raw.get("op") or "").strip().lower()
    match op:
        case "and" | "or":
            children = raw.get("conditions")
            if not isinstance(children, list):
                raise ConditionError(f"'{op}' condition needs a 'conditions' list")
            return ConditionGroup(op=op, conditions=[parse_condition(c) for c in children])
        case "not":
            if "condition" not in raw:
                raise ConditionError("'not' condition needs a 'condition'")
            return ConditionNot(condition=parse_condition(raw["condition"]))
        case _:
            var = raw.get("var")
            if var is None or str(var).strip() == "":
                raise ConditionError(f"Leaf condition without 'var': {dict(raw)}")
            return ConditionLeaf(var=str(var).strip(), op=op, val=raw.get("val"))


def normalize(value: Any) -> Optional[str]:
    """String form used for equality: booleans lowercase, integral floats without '.0'."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """Leading numeric prefix of ``value``, read the way the page's parseFloat does.

    ``"12abc"`` is 12, ``"2020-01-01"`` is 2020; lists are joined with commas
    first. None when no number can be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, (list, tuple)):
        value = ",".join("" if v is None else str(v) for v in value)
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(1)) if match else None


def _members(value: Any) -> list[Optional[str]]:
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    return [normalize(value)]


def _evaluate_leaf(leaf: ConditionLeaf, live: Mapping[str, Any]) -> bool:
    present = leaf.var in live and live[leaf.var] is not None
    actual = live.get(leaf.var)
    multi = isinstance(actual, (list, tuple))

    match leaf.op:
        case "eq":
            if not present:
                return False
            if multi:
                return normalize(leaf.val) in _members(actual)
            return normalize(actual) == normalize(leaf.val)
        case "neq":
            if not present:
                return True
            if multi:
                return normalize(leaf.val) not in _members(actual)
            return normalize(actual) != normalize(leaf.val)
        case "in":
            if not present:
                return False
            expected = _members(leaf.val)
            return any(member in expected for member in _members(actual))
        case "gt" | "lt" | "gte" | "lte":
            left, right = to_number(actual), to_number(leaf.val)
            if left is None or right is None:
                return False
            return {
                "gt": left > right,
                "lt": left < right,
                "gte": left >= right,
                "lte": left <= right,
            }[leaf.op]
        case _:
            # Unknown operators never hide content.
            return True


def evaluate(condition: Any, live_values: Mapping[str, Any]) -> bool:
    """Evaluate a condition (model, dict or JSON text) against live input values."""
    node = parse_condition(condition)
    match node:
        case ConditionGroup(op="and"):
            return all(evaluate(c, live_values) for c in node.conditions)
        case ConditionGroup():
            return any(evaluate(c, live_values) for c in node.conditions)
        case ConditionNot():
            return not evaluate(node.condition, live_values)
        case _:
            return _evaluate_leaf(node, live_values)


def condition_variables(condition: Any) -> list[str]:
    """Variables referenced by a condition, in first-appearance order."""
    node = parse_condition(condition)
    match node:
        case ConditionGroup():
            names: list[str] = []
            for child in node.conditions:
                names.extend(v for v in condition_variables(child) if v not in names)
            return names
        case ConditionNot():
            return condition_variables(node.condition)
        case _:
            return [node.var]


def condition_hints(condition: Any, into: Optional[dict[str, list[str]]] = None) -> dict[str, list[str]]:
    """Candidate values per variable: scalar ``eq``/``neq`` values and ``in`` lists."""
    hints = into if into is not None else {}
    node = parse_condition(condition)
    match node:
        case ConditionGroup():
            for child in node.conditions:
                condition_hints(child, hints)
        case ConditionNot():
            condition_hints(node.condition, hints)
        case ConditionLeaf():
            bucket = hints.setdefault(node.var, [])
            if node.op in ("eq", "neq") and node.val is not None and not isinstance(node.val, list):
                candidates = [node.val]
            elif node.op == "in" and isinstance(node.val, list):
                candidates = node.val
            else:
                candidates = []
            for value in candidates:
                text = normalize(value) or ""
                if text and text not in bucket:
                    bucket.append(text)
    return hints
