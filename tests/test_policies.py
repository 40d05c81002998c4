"""Tests for per-shape change policies."""

import pytest

from dashcheck.interaction.controls import ControlChange, ControlDescriptor
from dashcheck.interaction.policies import (
    button_group_policy,
    checkbox_policy,
    choose_change,
    format_number,
    number_policy,
    pick_target,
    radio_policy,
    select_policy,
    slider_policy,
    switch_policy,
    text_policy,
)

from fake_dashboard import (
    button_group,
    checkbox_group,
    enhanced_select,
    number_control,
    radio_group,
    select_control,
    slider_control,
    switch_control,
    text_control,
)


def descriptor(raw: dict) -> ControlDescriptor:
    return ControlDescriptor.model_validate(raw)


def applied(raw: dict, change: ControlChange) -> dict:
    """Apply a select change to a raw native select, the way a page would."""
    wanted = change.values if change.values is not None else [change.value]
    for option in raw["native_options"]:
        option["selected"] = option["value"] in wanted
    raw["value"] = wanted[0] if wanted else ""
    return raw


class TestPickTarget:
    def test_first_different(self):
        assert pick_target(["A", "B", "C"], "A") == "B"

    def test_hint_preferred(self):
        assert pick_target(["A", "B", "C"], "A", hints=["C"]) == "C"

    def test_hint_equal_to_current_ignored(self):
        assert pick_target(["A", "B"], "A", hints=["A", "Z"]) == "B"

    def test_none_when_single(self):
        assert pick_target(["A"], "A") is None


class TestCheckbox:
    def test_many_checked_keeps_first(self):
        change = checkbox_policy(descriptor(checkbox_group("c", "r", ["A", "B", "C"], ["B", "C"])))
        assert change.values == ["B"]
        assert change.operation == "check"

    def test_one_checked_adds_other(self):
        change = checkbox_policy(descriptor(checkbox_group("c", "r", ["A", "B"], ["A"])))
        assert change.values == ["A", "B"]

    def test_none_checked_checks_first(self):
        change = checkbox_policy(descriptor(checkbox_group("c", "r", ["A", "B"])))
        assert change.values == ["A"]

    def test_single_box_unchecks(self):
        change = checkbox_policy(descriptor(checkbox_group("c", "r", ["A"], ["A"])))
        assert change.values == []

    def test_hinted(self):
        change = checkbox_policy(descriptor(checkbox_group("c", "r", ["A", "B", "C"], ["A"])), ["C"])
        assert change.values == ["A", "C"]

    def test_disabled_items_ignored(self):
        raw = checkbox_group("c", "r", ["A", "B"])
        for item in raw["items"]:
            item["disabled"] = True
        assert checkbox_policy(descriptor(raw)) is None


class TestRadio:
    def test_selects_unchecked(self):
        change = radio_policy(descriptor(radio_group("c", "r", ["A", "B"], "A")))
        assert change.values == ["B"]

    def test_single_radio_noop(self):
        assert radio_policy(descriptor(radio_group("c", "r", ["A"], "A"))) is None


class TestSelect:
    def test_single_toggles_between_two(self):
        """A -> B, then B -> A; never stalls with two options."""
        raw = select_control("c", "edu", ["A", "B"], ["A"])
        first = select_policy(descriptor(raw))
        assert first.value == "B"
        second = select_policy(descriptor(applied(raw, first)))
        assert second.value == "A"

    def test_single_option_noop(self):
        assert select_policy(descriptor(select_control("c", "edu", ["A"]))) is None

    def test_multi_selects_all(self):
        change = select_policy(descriptor(select_control("c", "v", ["A", "B", "C"], ["A"], multiple=True)))
        assert change.values == ["A", "B", "C"]
        assert change.detail == "select-multiple-all"

    def test_multi_all_selected_drops_one(self):
        raw = select_control("c", "v", ["A", "B", "C"], ["A", "B", "C"], multiple=True)
        change = select_policy(descriptor(raw))
        assert change.values == ["A", "B"]

    def test_enhanced_uses_full_option_set(self):
        change = select_policy(descriptor(enhanced_select("c", "edu", ["HS", "Grad"], ["HS"])))
        assert change.value == "Grad"
        assert change.detail == "select-single-enhanced"

    def test_multi_hinted(self):
        raw = select_control("c", "v", ["A", "B", "C"], ["A"], multiple=True)
        change = select_policy(descriptor(raw), hints=["C"])
        assert change.values == ["C"]


class TestSlider:
    def test_at_min_steps_up(self):
        change = slider_policy(descriptor(slider_control("s", "y", 0, 10, 0, step=2)))
        assert change.value == "2"
        assert change.operation == "fill"

    def test_at_max_goes_to_min(self):
        change = slider_policy(descriptor(slider_control("s", "y", 0, 10, 10)))
        assert change.value == "0"

    def test_middle_goes_to_min(self):
        change = slider_policy(descriptor(slider_control("s", "y", 0, 10, 4)))
        assert change.value == "0"

    def test_step_clamped_to_max(self):
        change = slider_policy(descriptor(slider_control("s", "y", 0, 1, 0, step=5)))
        assert change.value == "1"

    def test_jump_to_opposite_bound(self):
        assert slider_policy(descriptor(slider_control("s", "y", 0, 10, 0)), jump=True).value == "10"
        assert slider_policy(descriptor(slider_control("s", "y", 0, 10, 7)), jump=True).value == "0"

    def test_fractional_step(self):
        change = slider_policy(descriptor(slider_control("s", "y", 0, 1, 0, step=0.25)))
        assert change.value == "0.25"

    def test_degenerate_range(self):
        assert slider_policy(descriptor(slider_control("s", "y", 5, 5, 5))) is None


class TestOtherShapes:
    def test_button_group_first_inactive(self):
        change = button_group_policy(descriptor(button_group("b", "v", ["A", "B"], active="A")))
        assert change.value == "B"
        assert change.operation == "click"

    def test_button_group_none_active(self):
        change = button_group_policy(descriptor(button_group("b", "v", ["A", "B"])))
        assert change.value == "A"

    def test_switch_clicks(self):
        change = switch_policy(descriptor(switch_control("s", "v")))
        assert change.operation == "click"
        assert change.value is None

    def test_text_appends(self):
        assert text_policy(descriptor(text_control("t", "q", "abc"))).value == "abcx"

    def test_text_candidate(self):
        change = text_policy(descriptor(text_control("t", "q", "abc")), ["abc", "Oslo"])
        assert change.value == "Oslo"
        assert change.detail == "text-candidate"

    def test_number_increments(self):
        assert number_policy(descriptor(number_control("n", "k", 3, 0, 10))).value == "4"

    def test_number_wraps(self):
        assert number_policy(descriptor(number_control("n", "k", 10, 2, 10))).value == "2"

    def test_number_without_value(self):
        raw = number_control("n", "k", 0, 5, 10)
        raw["value"] = ""
        assert number_policy(descriptor(raw)).value == "5"

    def test_number_never_repeats(self):
        assert number_policy(descriptor(number_control("n", "k", 3, 3, 3))) is None


class TestChooseChange:
    @pytest.mark.parametrize("raw, operation", [
        (checkbox_group("c", "v", ["A", "B"]), "check"),
        (radio_group("c", "v", ["A", "B"], "A"), "check"),
        (select_control("c", "v", ["A", "B"]), "select"),
        (slider_control("c", "v", 0, 3, 0), "fill"),
        (button_group("c", "v", ["A", "B"]), "click"),
        (switch_control("c", "v"), "click"),
        (text_control("c", "v"), "fill"),
        (number_control("c", "v", 1), "fill"),
    ])
    def test_dispatch(self, raw, operation):
        assert choose_change(descriptor(raw)).operation == operation

    def test_jump_sliders(self):
        change = choose_change(descriptor(slider_control("c", "v", 0, 3, 0)), jump_sliders=True)
        assert change.value == "3"


def test_format_number():
    assert format_number(3.0) == "3"
    assert format_number(2.5) == "2.5"
