"""
Tests for sanitizers.

Sanitizers always return the target type, stay within bounds and are
idempotent.
"""

import math

import pytest

from trainguard.primitives import is_positive_integer
from trainguard.sanitizers import (
    round_half_up,
    sanitize_array,
    sanitize_integer,
    sanitize_number,
    sanitize_string,
)


def test_sanitize_string_trims_whitespace():
    assert sanitize_string("  hello  ") == "hello"


def test_sanitize_string_removes_html_tags():
    assert sanitize_string('<script>alert("xss")</script>') == 'alert("xss")'
    assert sanitize_string("<b>bold</b>") == "bold"
    assert sanitize_string("  <i> spaced </i>  ") == "spaced"


def test_sanitize_string_limits_length():
    assert len(sanitize_string("a" * 2000, 100)) == 100
    assert len(sanitize_string("a" * 2000)) == 1000


def test_sanitize_string_handles_non_strings():
    assert sanitize_string(123) == ""
    assert sanitize_string(None) == ""


def test_sanitize_number_clamps_to_range():
    assert sanitize_number(5, 0, 10) == 5
    assert sanitize_number(-5, 0, 10) == 0
    assert sanitize_number(15, 0, 10) == 10


def test_sanitize_number_handles_non_numbers():
    assert sanitize_number("abc", 0, 10) == 0
    assert sanitize_number(None, 5, 10) == 5
    assert sanitize_number(math.nan, 5, 10) == 5
    assert sanitize_number(True, 5, 10) == 5


@pytest.mark.parametrize("value", [-1e9, -3.2, 0, 4.9, 7, 10, 11.5, 1e9, "x", None])
def test_sanitize_number_range_and_idempotence(value):
    once = sanitize_number(value, 2, 9)
    assert 2 <= once <= 9
    assert sanitize_number(once, 2, 9) == once


def test_sanitize_integer_rounds_half_up():
    assert sanitize_integer(4.5, 0, 10) == 5
    assert sanitize_integer(4.4, 0, 10) == 4
    assert sanitize_integer(42, 0, 10) == 10
    assert sanitize_integer("7", 1, 10) == 1
    assert isinstance(sanitize_integer(3.7, 0, 10), int)


def test_round_half_up_steps():
    assert round_half_up(80.3, 0.25) == 80.25
    assert round_half_up(7.25, 0.5) == 7.5
    assert round_half_up(7.3, 0.5) == 7.5
    assert round_half_up(2.5) == 3


def test_sanitize_array_filters_and_limits():
    assert sanitize_array([1, 2, -3, 0, 4], is_positive_integer) == [1, 2, 4]
    assert sanitize_array(list(range(10)), max_items=3) == [0, 1, 2]
    assert sanitize_array("not a list") == []
    assert sanitize_array(None) == []
