"""Option-set and current-selection resolution for select controls.

Enhancement widgets can shrink the native ``<select>`` down to the selected
item, so the full value set is resolved through an ordered list of
strategies. The first strategy returning a non-empty list wins; new widget
quirks are handled by adding a strategy.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from dashcheck.interaction.controls import ChoiceRecord, ControlDescriptor

Resolver = Callable[[ControlDescriptor], Optional[list[str]]]


def _usable(choices: Optional[list[ChoiceRecord]]) -> Optional[list[str]]:
    if choices is None:
        return None
    return [str(c.value) for c in choices if not c.disabled and str(c.value if c.value is not None else "") != ""]


def from_store_choices(control: ControlDescriptor) -> Optional[list[str]]:
    return _usable(control.enhancement.store_choices) if control.enhancement else None


def from_config_choices(control: ControlDescriptor) -> Optional[list[str]]:
    return _usable(control.enhancement.config_choices) if control.enhancement else None


def from_rendered_choices(control: ControlDescriptor) -> Optional[list[str]]:
    return _usable(control.enhancement.rendered_choices) if control.enhancement else None


def from_native_options(control: ControlDescriptor) -> Optional[list[str]]:
    return [o.value for o in control.native_options if not o.disabled and o.value != ""]


OPTION_RESOLVERS: list[Resolver] = [
    from_store_choices,
    from_config_choices,
    from_rendered_choices,
    from_native_options,
]


def current_from_store(control: ControlDescriptor) -> Optional[list[str]]:
    if not control.enhancement or control.enhancement.store_choices is None:
        return None
    return [str(c.value) for c in control.enhancement.store_choices if c.selected]


def current_from_widget_value(control: ControlDescriptor) -> Optional[list[str]]:
    if not control.enhancement:
        return None
    return _as_values(control.enhancement.value)


def current_from_native_selected(control: ControlDescriptor) -> Optional[list[str]]:
    return [o.value for o in control.native_options if o.selected and o.value != ""]


def current_from_native_value(control: ControlDescriptor) -> Optional[list[str]]:
    return [control.value] if control.value else None


CURRENT_RESOLVERS: list[Resolver] = [
    current_from_store,
    current_from_widget_value,
    current_from_native_selected,
    current_from_native_value,
]


def _as_values(raw: Any) -> Optional[list[str]]:
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return [str(v) for v in raw if v is not None and str(v) != ""]
    text = str(raw)
    return [text] if text else None


def first_non_empty(control: ControlDescriptor, resolvers: list[Resolver]) -> list[str]:
    for resolver in resolvers:
        values = resolver(control)
        if values:
            return values
    return []


def resolve_options(control: ControlDescriptor) -> list[str]:
    """Full available value set of a select, deduplicated in source order."""
    return list(dict.fromkeys(first_non_empty(control, OPTION_RESOLVERS)))


def resolve_current(control: ControlDescriptor) -> list[str]:
    """Currently selected value(s) of a select."""
    return first_non_empty(control, CURRENT_RESOLVERS)


def child_option_signature(control: ControlDescriptor) -> str:
    """Pipe-joined option values of a linked child select, disabled entries included."""
    if control.enhancement and control.enhancement.store_choices is not None:
        values = [str(c.value) for c in control.enhancement.store_choices
                  if str(c.value if c.value is not None else "") != ""]
        if values:
            return "|".join(values)
    return "|".join(o.value for o in control.native_options if o.value != "")
