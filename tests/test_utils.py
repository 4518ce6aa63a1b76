"""Tests for superclock/utils.py."""

from __future__ import annotations

import math

import pytest
from superclock.utils import (
    coerce_bool,
    coerce_float,
    decode_json_object,
    parse_bool,
    parse_float,
    parse_int,
    same_value,
)


@pytest.mark.parametrize(
    ("value", "default", "expected"),
    [
        (None, True, True),
        ("yes", False, True),
        (" ON ", False, True),
        ("0", True, False),
        ("garbage", True, False),
    ],
)
def test_parse_bool(value, default, expected):
    assert parse_bool(value, default) is expected


def test_parse_int_and_float_fallbacks():
    assert parse_int("12", 0) == 12
    assert parse_int("1.5", 7) == 7
    assert parse_int(None, 3) == 3
    assert parse_float("0.25", 1.0) == 0.25
    assert parse_float("fast", 1.0) == 1.0


def test_decode_json_object():
    assert decode_json_object(b'{"soc": 45}') == {"soc": 45}
    assert decode_json_object('{"a": {"b": 1}}') == {"a": {"b": 1}}
    assert decode_json_object(b"[1]") is None
    assert decode_json_object(b"Online") is None
    assert decode_json_object(b"[" * 100_000) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [(45, 45.0), (26.5, 26.5), ("30", 30.0), (" -1.5 ", -1.5)],
)
def test_coerce_float(value, expected):
    assert coerce_float(value) == expected


@pytest.mark.parametrize("value", [None, True, False, "n/a", [1], {"x": 1}, 10**400])
def test_coerce_float_non_numeric_is_nan(value):
    assert math.isnan(coerce_float(value))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, True),
        (False, False),
        (1, True),
        (0, False),
        ("ON", True),
        ("off", False),
        ("open", None),
        (None, None),
        ([], None),
    ],
)
def test_coerce_bool(value, expected):
    assert coerce_bool(value) is expected


def test_same_value_treats_nan_as_equal():
    assert same_value(math.nan, math.nan)
    assert same_value(1.0, 1.0)
    assert not same_value(math.nan, 1.0)
    assert not same_value(None, False)
