"""Tests for the show-when condition evaluator and consistency checks."""

import pytest

from dashcheck.conditions.consistency import (
    ShowWhenElement,
    build_live_values,
    check_consistency,
    control_value,
)
from dashcheck.conditions.evaluator import (
    ConditionError,
    ConditionGroup,
    ConditionLeaf,
    ConditionNot,
    condition_hints,
    condition_variables,
    evaluate,
    normalize,
    to_number,
    parse_condition,
)
from dashcheck.interaction.controls import ControlDescriptor

from fake_dashboard import (
    checkbox_group,
    enhanced_select,
    radio_group,
    select_control,
    slider_control,
    switch_control,
    text_control,
)


def controls(*raws: dict) -> list[ControlDescriptor]:
    return [ControlDescriptor.model_validate(r) for r in raws]


class TestParse:
    def test_json_leaf(self):
        node = parse_condition('{"var": "x", "op": "eq", "val": "G"}')
        assert node == ConditionLeaf(var="x", op="eq", val="G")

    def test_nested(self):
        node = parse_condition({"op": "not", "condition": {
            "op": "or", "conditions": [{"var": "a", "op": "eq", "val": 1}]}})
        assert isinstance(node, ConditionNot)
        assert isinstance(node.condition, ConditionGroup)

    @pytest.mark.parametrize("raw", [
        "{not json",
        "[1, 2]",
        {"op": "and"},
        {"op": "not"},
        {"op": "eq", "val": 1},
    ])
    def test_malformed(self, raw):
        with pytest.raises(ConditionError):
            parse_condition(raw)

    def test_condition_error_is_value_error(self):
        assert issubclass(ConditionError, ValueError)


class TestEvaluate:
    def test_eq_neq(self):
        assert evaluate({"op": "eq", "var": "x", "val": "G"}, {"x": "G"}) is True
        assert evaluate({"op": "neq", "var": "x", "val": "G"}, {"x": "G"}) is False

    def test_and_flips_with_either_leaf(self):
        cond = {"op": "and", "conditions": [
            {"op": "eq", "var": "x", "val": "1"},
            {"op": "eq", "var": "y", "val": "2"},
        ]}
        assert evaluate(cond, {"x": "1", "y": "2"}) is True
        assert evaluate(cond, {"x": "0", "y": "2"}) is False
        assert evaluate(cond, {"x": "1", "y": "0"}) is False

    def test_or_and_not(self):
        cond = {"op": "or", "conditions": [
            {"op": "eq", "var": "x", "val": "a"},
            {"op": "not", "condition": {"op": "eq", "var": "y", "val": "b"}},
        ]}
        assert evaluate(cond, {"x": "z", "y": "c"}) is True
        assert evaluate(cond, {"x": "z", "y": "b"}) is False

    def test_multi_value_membership(self):
        assert evaluate({"op": "eq", "var": "r", "val": "North"}, {"r": ["North", "South"]}) is True
        assert evaluate({"op": "neq", "var": "r", "val": "North"}, {"r": ["South"]}) is True

    def test_in(self):
        assert evaluate({"op": "in", "var": "r", "val": ["a", "b"]}, {"r": "b"}) is True
        assert evaluate({"op": "in", "var": "r", "val": ["a", "b"]}, {"r": ["c", "a"]}) is True
        assert evaluate({"op": "in", "var": "r", "val": ["a"]}, {"r": "c"}) is False

    def test_numeric(self):
        assert evaluate({"op": "gt", "var": "n", "val": 5}, {"n": "6"}) is True
        assert evaluate({"op": "lte", "var": "n", "val": "5"}, {"n": 5}) is True
        assert evaluate({"op": "lt", "var": "n", "val": 5}, {"n": "abc"}) is False
        assert evaluate({"op": "gte", "var": "n", "val": 5}, {}) is False

    def test_numeric_reads_leading_number(self):
        assert evaluate({"op": "gte", "var": "d", "val": 2020}, {"d": "2020-01-01"}) is True
        assert evaluate({"op": "gt", "var": "n", "val": "10px"}, {"n": "12abc"}) is True
        assert evaluate({"op": "lt", "var": "n", "val": 5}, {"n": "  3.5 units"}) is True

    @pytest.mark.parametrize("value, expected", [
        ("12abc", 12.0),
        ("2020-01-01", 2020.0),
        (" -1.5e2x", -150.0),
        (".5", 0.5),
        ("Infinity", float("inf")),
        (["4", "9"], 4.0),
        (7, 7.0),
        ("abc", None),
        ("", None),
        (True, None),
        (None, None),
        (float("nan"), None),
    ])
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_missing_variable(self):
        assert evaluate({"op": "eq", "var": "x", "val": "a"}, {}) is False
        assert evaluate({"op": "neq", "var": "x", "val": "a"}, {}) is True

    def test_normalized_comparison(self):
        assert evaluate({"op": "eq", "var": "on", "val": "true"}, {"on": True}) is True
        assert evaluate({"op": "eq", "var": "n", "val": 3}, {"n": "3"}) is True
        assert normalize(3.0) == "3"

    def test_unknown_operator_shows(self):
        assert evaluate({"op": "matches", "var": "x", "val": "a"}, {"x": "b"}) is True

    def test_json_text_accepted(self):
        assert evaluate('{"op":"neq","var":"edu","val":"Grad"}', {"edu": "HS"}) is True


class TestVariablesAndHints:
    def test_variables_in_order(self):
        cond = {"op": "and", "conditions": [
            {"op": "eq", "var": "b", "val": 1},
            {"op": "not", "condition": {"op": "eq", "var": "a", "val": 2}},
            {"op": "eq", "var": "b", "val": 3},
        ]}
        assert condition_variables(cond) == ["b", "a"]

    def test_hints(self):
        cond = {"op": "or", "conditions": [
            {"op": "eq", "var": "edu", "val": "Grad"},
            {"op": "in", "var": "region", "val": ["North", "South"]},
            {"op": "gt", "var": "year", "val": 2020},
        ]}
        assert condition_hints(cond) == {"edu": ["Grad"], "region": ["North", "South"], "year": []}

    def test_hints_accumulate(self):
        hints: dict = {}
        condition_hints({"op": "eq", "var": "x", "val": "a"}, hints)
        condition_hints({"op": "neq", "var": "x", "val": "b"}, hints)
        assert hints == {"x": ["a", "b"]}


class TestLiveValues:
    def test_shapes(self):
        live = build_live_values(controls(
            checkbox_group("c1", "region", ["N", "S"], ["N", "S"]),
            radio_group("c2", "metric", ["sum", "avg"], "avg"),
            enhanced_select("c3", "edu", ["HS", "Grad"], ["Grad"]),
            select_control("c4", "tags", ["a", "b"], ["a", "b"], multiple=True),
            slider_control("c5", "year", 2000, 2010, 2004),
            switch_control("c6", "smooth", on=True),
        ))
        assert live["region"] == ["N", "S"]
        assert live["metric"] == "avg"
        assert live["edu"] == "Grad"
        assert live["tags"] == ["a", "b"]
        assert live["year"] == "2004"
        assert live["smooth"] is True

    def test_keyed_by_input_id_and_filter_var(self):
        raw = text_control("t", "query", "abc")
        raw["input_id"] = "query_input"
        live = build_live_values(controls(raw))
        assert live["query"] == "abc"
        assert live["query_input"] == "abc"

    def test_empty_values_skipped(self):
        live = build_live_values(controls(
            text_control("t", "query", ""),
            radio_group("r", "metric", ["a", "b"]),
        ))
        assert live == {}

    def test_control_value_unchecked_group(self):
        control = controls(checkbox_group("c", "r", ["A"]))[0]
        assert control_value(control) == []


class TestConsistency:
    def test_consistent(self):
        elements = [ShowWhenElement(key="b1", condition='{"op":"eq","var":"edu","val":"HS"}', visible=True)]
        assert check_consistency(elements, controls(select_control("c", "edu", ["HS", "Grad"]))) == []

    def test_mismatch_reported(self):
        elements = [ShowWhenElement(key="b1", condition='{"op":"eq","var":"edu","val":"Grad"}', visible=True)]
        mismatches = check_consistency(elements, controls(select_control("c", "edu", ["HS", "Grad"])))
        assert len(mismatches) == 1
        assert mismatches[0].expected is False
        assert mismatches[0].actual is True

    def test_unparsable_is_mismatch(self):
        elements = [ShowWhenElement(key="b1", condition="{broken", visible=True)]
        mismatches = check_consistency(elements, [])
        assert mismatches[0].expected is None
        assert "Invalid condition JSON" in mismatches[0].error
