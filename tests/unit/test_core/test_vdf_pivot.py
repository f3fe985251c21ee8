"""Tests for pivot -> binary VDF value coercion."""

from __future__ import annotations

import logging

import pytest

from steamshortcuts.core.vdf_parser import binary_dumps
from steamshortcuts.core.vdf_pivot import DROPPED, coerce_generic, coerce_value


class TestCoerceValue:
    """Scalar coercion rules."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (7, 7),
            (True, 1),
            (False, 0),
            (-1, 0xFFFFFFFF),
            (0x1_0000_0005, 5),
            (3.0, 3),
            (-2.0, 0xFFFFFFFE),
        ],
    )
    def test_integer_like_values_wrap_to_uint32(self, value, expected) -> None:
        assert coerce_value(value) == expected

    def test_float_and_int_coerce_equally(self) -> None:
        assert coerce_value(4294967295.0) == coerce_value(4294967295)

    @pytest.mark.parametrize("value", [None, 1.5, float("nan"), float("inf"), [1, 2], (1,), b"raw"])
    def test_unsupported_values_are_dropped(self, value) -> None:
        assert coerce_value(value) is DROPPED

    def test_strings_pass_through(self) -> None:
        assert coerce_value("Ökosystem") == "Ökosystem"


class TestCoerceGeneric:
    """Recursive coercion of pivot mappings."""

    def test_drops_keys_and_keeps_order(self) -> None:
        pivot = {"b": 1, "gone": None, "a": "x", "list": [1], "frac": 0.5}
        result = coerce_generic(pivot)
        assert result == {"b": 1, "a": "x"}
        assert list(result) == ["b", "a"]

    def test_recurses_into_maps(self) -> None:
        pivot = {"shortcuts": {"0": {"IsHidden": True, "tags": {"0": "RPG", "1": None}}}}
        assert coerce_generic(pivot) == {"shortcuts": {"0": {"IsHidden": 1, "tags": {"0": "RPG"}}}}

    def test_does_not_mutate_input(self) -> None:
        pivot = {"x": None, "n": {"y": True}}
        coerce_generic(pivot)
        assert pivot == {"x": None, "n": {"y": True}}

    def test_logs_dropped_keys_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="steamshortcuts.vdf"):
            coerce_generic({"outer": {"inner": [1, 2]}})
        assert "outer/inner" in caplog.text
        assert "list" in caplog.text

    def test_numeric_forms_encode_identically(self) -> None:
        """Signed, whole-float and unsigned forms of one value produce the same bytes."""
        encoded = {binary_dumps(coerce_generic({"appid": value})) for value in (-1, 4294967295.0, 4294967295)}
        assert len(encoded) == 1
