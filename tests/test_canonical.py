"""Tests for the value canonicalizer."""

import math

from dashcheck.state.canonical import canonicalize, hash_string, signature


class TestCanonicalize:
    def test_deterministic(self):
        value = {"a": [1, 2.5, None], "b": {"c": True}}
        assert canonicalize(value) == canonicalize(value)

    def test_key_order_insensitive(self):
        assert canonicalize({"b": 1, "a": 2}) == canonicalize({"a": 2, "b": 1})

    def test_numbers_fixed_precision(self):
        assert canonicalize(1) == "1.000000"
        assert canonicalize(0.1 + 0.2) == canonicalize(0.3)

    def test_int_and_float_agree(self):
        assert canonicalize(3) == canonicalize(3.0)

    def test_non_finite_numbers(self):
        assert canonicalize(math.nan) == "NaN"
        assert canonicalize(math.inf) == "Infinity"
        assert canonicalize(-math.inf) == "-Infinity"

    def test_scalars(self):
        assert canonicalize(None) == ""
        assert canonicalize(True) == "true"
        assert canonicalize(False) == "false"
        assert canonicalize("North") == "North"

    def test_value_like_field_wins(self):
        assert canonicalize({"value": 4, "name": "x"}) == canonicalize(4)
        assert canonicalize({"x": "Jan", "y": 4}) == canonicalize(4)
        assert canonicalize({"x": "Jan"}) == "Jan"

    def test_point_shapes_collapse(self):
        """A bare number, a {y} object and a {value} object canonicalize the same."""
        assert canonicalize(7) == canonicalize({"y": 7}) == canonicalize({"value": 7})

    def test_other_mappings_sorted(self):
        assert canonicalize({"b": 2, "a": "z"}) == "{a:z,b:2.000000}"

    def test_nested_lists(self):
        assert canonicalize([1, [2, "a"]]) == "[1.000000,[2.000000,a]]"


class TestSignature:
    def test_hash_is_32bit_hex(self):
        h = hash_string("hello world")
        assert int(h, 16) < 2 ** 32
        assert h == h.lower()

    def test_hash_of_empty(self):
        assert hash_string("") == format(5381, "x")
        assert hash_string(None) == hash_string("")

    def test_signature_format(self):
        sig = signature([1, 2, 3])
        count, _, digest = sig.partition(":")
        assert count == "3"
        assert digest == hash_string("1.000000|2.000000|3.000000")

    def test_signature_is_order_sensitive(self):
        assert signature([1, 2]) != signature([2, 1])

    def test_signature_detects_value_change(self):
        assert signature([1, 2, 3]) != signature([1, 2, 4])

    def test_signature_of_none(self):
        assert signature(None) == signature([])
        assert signature([]).startswith("0:")
