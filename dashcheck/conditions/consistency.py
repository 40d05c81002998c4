"""Checks that conditional blocks are shown exactly when their condition holds."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel

from dashcheck.conditions.evaluator import ConditionError, evaluate, parse_condition
from dashcheck.interaction.controls import ControlDescriptor, ControlShape
from dashcheck.interaction.options import resolve_current

logger = logging.getLogger(__name__)


class ShowWhenElement(BaseModel):
    """A rendered element carrying a show-when declaration."""
    key: str
    condition: str
    visible: bool


class ShowWhenMismatch(BaseModel):
    key: str
    condition: str
    expected: Optional[bool] = None  # None when the condition could not be parsed
    actual: bool
    error: str = ""


def control_value(control: ControlDescriptor) -> Any:
    """Live value of a control: a list for multi-valued controls, else a scalar."""
    match control.shape:
        case ControlShape.CHECKBOX_GROUP:
            return [i.value for i in control.items if i.checked]
        case ControlShape.RADIO_GROUP | ControlShape.BUTTON_GROUP:
            return next((i.value for i in control.items if i.checked), None)
        case ControlShape.SELECT:
            current = resolve_current(control)
            if control.multiple:
                return current
            return current[0] if current else None
        case ControlShape.SWITCH:
            return control.value == "true"
        case _:
            return control.value


def build_live_values(controls: list[ControlDescriptor]) -> dict[str, Any]:
    """Fresh ``{name -> value|values}`` map keyed by input id and filter variable."""
    live: dict[str, Any] = {}
    for control in controls:
        value = control_value(control)
        if value is None or value == "":
            continue
        for name in (control.input_id, control.filter_var):
            if name:
                live[name] = value
    return live


def check_consistency(
    elements: list[ShowWhenElement],
    controls: list[ControlDescriptor],
) -> list[ShowWhenMismatch]:
    """Compare each element's rendered visibility with its evaluated condition."""
    live = build_live_values(controls)
    mismatches = []
    for element in elements:
        try:
            expected = evaluate(parse_condition(element.condition), live)
        except ConditionError as e:
            logger.warning("Unparsable show-when condition on %s: %s", element.key, e)
            mismatches.append(ShowWhenMismatch(
                key=element.key, condition=element.condition, actual=element.visible, error=str(e),
            ))
            continue
        if expected != element.visible:
            mismatches.append(ShowWhenMismatch(
                key=element.key, condition=element.condition, expected=expected, actual=element.visible,
            ))
    logger.debug("Show-when consistency: %d element(s), %d mismatch(es)", len(elements), len(mismatches))
    return mismatches
