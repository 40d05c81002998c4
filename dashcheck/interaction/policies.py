"""Deterministic per-shape change policies.

Every policy is a pure function of a ``ControlDescriptor`` (plus optional
value hints) returning the ``ControlChange`` to apply, or ``None`` when the
control cannot be changed.
"""

from __future__ import annotations

import math
from typing import Optional

from dashcheck.interaction.controls import ControlChange, ControlDescriptor, ControlShape
from dashcheck.interaction.options import resolve_current, resolve_options

_EPSILON = 1e-9


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _parse(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def pick_target(values: list[str], current: str, hints: Optional[list[str]] = None) -> Optional[str]:
    """First hinted value that differs from ``current``, else the first different value."""
    for hint in hints or []:
        if hint != current and hint in values:
            return hint
    for value in values:
        if value != current:
            return value
    return None


def checkbox_policy(control: ControlDescriptor, hints: Optional[list[str]] = None) -> Optional[ControlChange]:
    items = control.enabled_items
    if not items:
        return None
    checked = [i.value for i in items if i.checked]
    if len(checked) > 1:
        target = [checked[0]]
        detail = "checkbox-keep-one"
    elif len(checked) == 1:
        other = pick_target([i.value for i in items], checked[0], hints)
        if other is None:
            target, detail = [], "checkbox-uncheck-only"
        else:
            target, detail = checked + [other], "checkbox-add-one"
    else:
        target = [pick_target([i.value for i in items], "", hints) or items[0].value]
        detail = "checkbox-first"
    return ControlChange(ref=control.ref, operation="check", values=target, detail=detail)


def radio_policy(control: ControlDescriptor, hints: Optional[list[str]] = None) -> Optional[ControlChange]:
    items = control.enabled_items
    if len(items) < 2:
        return None
    current = next((i.value for i in items if i.checked), "")
    target = pick_target([i.value for i in items], current, hints)
    if target is None:
        return None
    return ControlChange(ref=control.ref, operation="check", values=[target], detail="radio")


def select_policy(control: ControlDescriptor, hints: Optional[list[str]] = None) -> Optional[ControlChange]:
    options = resolve_options(control)
    if len(options) < 2:
        return None
    current = resolve_current(control)
    suffix = "-enhanced" if control.enhancement else ""
    if control.multiple and not hints:
        selected = [v for v in options if v in current]
        if len(selected) >= len(options):
            return ControlChange(ref=control.ref, operation="select", values=options[:-1],
                                 detail=f"select-multiple-drop-one{suffix}")
        return ControlChange(ref=control.ref, operation="select", values=list(options),
                             detail=f"select-multiple-all{suffix}")
    target = pick_target(options, current[0] if current else "", hints)
    if target is None:
        return None
    if control.multiple:
        return ControlChange(ref=control.ref, operation="select", values=[target],
                             detail=f"select-multiple-hinted{suffix}")
    return ControlChange(ref=control.ref, operation="select", value=target,
                         detail=f"select-single{suffix}")


def slider_policy(control: ControlDescriptor, jump: bool = False) -> Optional[ControlChange]:
    """At the minimum, step up once; anywhere else, go back to the minimum.

    With ``jump`` the slider moves to the opposite bound instead, which is
    more likely to flip threshold conditions.
    """
    lo, hi, current = control.min, control.max, _parse(control.value)
    if not (_finite(lo) and _finite(hi) and current is not None and math.isfinite(current)) or hi <= lo:
        return None
    step = control.step if _finite(control.step) and control.step > 0 else 1.0
    at_min = abs(current - lo) < _EPSILON
    if jump:
        target = hi if at_min else lo
    else:
        target = min(hi, lo + step) if at_min else lo
    if abs(target - current) < _EPSILON:
        return None
    return ControlChange(ref=control.ref, operation="fill", value=format_number(target),
                         detail="slider-jump" if jump else "slider-step")


def button_group_policy(control: ControlDescriptor, hints: Optional[list[str]] = None) -> Optional[ControlChange]:
    items = control.enabled_items
    if not items:
        return None
    active = next((i.value for i in items if i.checked), "")
    target = pick_target([i.value for i in items], active, hints) or items[0].value
    return ControlChange(ref=control.ref, operation="click", value=target, detail="button-group")


def switch_policy(control: ControlDescriptor) -> Optional[ControlChange]:
    return ControlChange(ref=control.ref, operation="click", detail="switch")


def text_policy(control: ControlDescriptor, candidates: Optional[list[str]] = None) -> Optional[ControlChange]:
    current = control.value or ""
    target = pick_target(candidates, current) if candidates else None
    if target is None:
        target = current + "x"
        detail = "text-append"
    else:
        detail = "text-candidate"
    return ControlChange(ref=control.ref, operation="fill", value=target, detail=detail)


def number_policy(control: ControlDescriptor) -> Optional[ControlChange]:
    current = _parse(control.value)
    lo, hi = control.min, control.max
    if current is not None and math.isfinite(current):
        target = current + 1
    else:
        target = lo if _finite(lo) else 1.0
    if _finite(hi) and target > hi:
        target = lo if _finite(lo) else hi
    if current is not None and abs(target - current) < _EPSILON:
        return None
    return ControlChange(ref=control.ref, operation="fill", value=format_number(target), detail="number")


def choose_change(
    control: ControlDescriptor,
    hints: Optional[list[str]] = None,
    jump_sliders: bool = False,
) -> Optional[ControlChange]:
    """Dispatch to the policy for the control's shape."""
    match control.shape:
        case ControlShape.CHECKBOX_GROUP:
            return checkbox_policy(control, hints)
        case ControlShape.RADIO_GROUP:
            return radio_policy(control, hints)
        case ControlShape.SELECT:
            return select_policy(control, hints)
        case ControlShape.SLIDER:
            return slider_policy(control, jump=jump_sliders)
        case ControlShape.BUTTON_GROUP:
            return button_group_policy(control, hints)
        case ControlShape.SWITCH:
            return switch_policy(control)
        case ControlShape.TEXT:
            return text_policy(control, hints)
        case ControlShape.NUMBER:
            return number_policy(control)
        case _:
            return None
