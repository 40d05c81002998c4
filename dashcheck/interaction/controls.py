"""Discovered input controls and the changes the synthesizer applies to them."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ControlShape(str, Enum):
    CHECKBOX_GROUP = "checkbox_group"
    RADIO_GROUP = "radio_group"
    SELECT = "select"
    SLIDER = "slider"
    BUTTON_GROUP = "button_group"
    SWITCH = "switch"
    TEXT = "text"
    NUMBER = "number"


# Generic "filter" discovery order.
FILTER_PRIORITY: list[ControlShape] = [
    ControlShape.CHECKBOX_GROUP,
    ControlShape.RADIO_GROUP,
    ControlShape.SELECT,
    ControlShape.SLIDER,
    ControlShape.BUTTON_GROUP,
    ControlShape.SWITCH,
    ControlShape.TEXT,
    ControlShape.NUMBER,
]

# Shapes that must be rendered visible to count as a candidate. Selects are
# exempt because enhancement widgets hide the native element; sliders are
# exempt because custom slider skins often hide the range input.
REQUIRES_VISIBLE = {
    ControlShape.CHECKBOX_GROUP,
    ControlShape.RADIO_GROUP,
    ControlShape.BUTTON_GROUP,
    ControlShape.SWITCH,
    ControlShape.TEXT,
    ControlShape.NUMBER,
}


class ControlItem(BaseModel):
    """One box, radio or button inside a group."""
    value: str
    label: str = ""
    checked: bool = False
    disabled: bool = False


class NativeOption(BaseModel):
    value: str
    label: str = ""
    selected: bool = False
    disabled: bool = False


class ChoiceRecord(BaseModel):
    value: Any = None
    label: str = ""
    selected: bool = False
    disabled: bool = False


class EnhancementState(BaseModel):
    """What the selection-enhancement widget exposes for one select.

    Each list is ``None`` when the widget does not carry that structure at all.
    """
    store_choices: Optional[list[ChoiceRecord]] = None
    config_choices: Optional[list[ChoiceRecord]] = None
    rendered_choices: Optional[list[ChoiceRecord]] = None
    value: Any = None  # getValue(true): scalar, list or None


class ControlDescriptor(BaseModel):
    ref: str
    shape: ControlShape
    filter_var: str = ""
    input_id: str = ""
    element_id: str = ""
    visible: bool = True
    disabled: bool = False
    multiple: bool = False
    input_type: str = ""
    value: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    items: list[ControlItem] = Field(default_factory=list)
    native_options: list[NativeOption] = Field(default_factory=list)
    enhancement: Optional[EnhancementState] = None
    linked_child_id: str = ""
    options_by_parent: dict[str, Any] = Field(default_factory=dict)

    @property
    def enabled_items(self) -> list[ControlItem]:
        return [i for i in self.items if not i.disabled]

    def bound_to(self, var: str) -> bool:
        return bool(var) and var in (self.filter_var, self.input_id)

    def is_candidate(self) -> bool:
        if self.disabled:
            return False
        return self.visible or self.shape not in REQUIRES_VISIBLE


class ControlChange(BaseModel):
    """A concrete state-changing action on one control.

    ``check``: make exactly ``values`` the checked items (boxes, radios)
    ``select``: choose ``value`` (single) or ``values`` (multiple)
    ``fill``: set the input's value to ``value`` and fire input/change
    ``click``: click the item ``value`` (button groups) or the control itself
    """
    ref: str
    operation: str
    value: Optional[str] = None
    values: Optional[list[str]] = None
    detail: str = ""
