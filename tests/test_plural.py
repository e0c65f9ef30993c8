#!/usr/bin/env python3
"""Tests for Plural-Forms parsing, compilation and evaluation."""

import pytest

from langc.plural import OP_CONST, OP_N, PluralRule, compile_expression, evaluate

RUSSIAN = (
    "nplurals=3; plural=(n%10==1 && n%100!=11 ? 0 : "
    "n%10>=2 && n%10<=4 && (n%100<10 || n%100>=20) ? 1 : 2);"
)
ARABIC = (
    "nplurals=6; plural=(n==0 ? 0 : n==1 ? 1 : n==2 ? 2 : "
    "n%100>=3 && n%100<=10 ? 3 : n%100>=11 ? 4 : 5);"
)


def test_default_rule():
    """English rule: singular only for exactly one."""
    rule = PluralRule.default()
    assert rule.nplurals == 2
    assert [rule.select(n) for n in (0, 1, 2, 5)] == [1, 0, 1, 1]


@pytest.mark.parametrize("n, expected", [
    (1, 0), (2, 1), (4, 1), (5, 2), (11, 2), (12, 2), (21, 0), (22, 1), (111, 2),
])
def test_russian_rule(n, expected):
    assert PluralRule.parse(RUSSIAN).select(n) == expected


@pytest.mark.parametrize("n, expected", [
    (0, 0), (1, 1), (2, 2), (3, 3), (10, 3), (11, 4), (99, 4), (100, 5), (102, 5),
])
def test_arabic_rule(n, expected):
    assert PluralRule.parse(ARABIC).select(n) == expected


def test_french_rule_treats_zero_as_singular():
    rule = PluralRule.parse("nplurals=2; plural=(n > 1);")
    assert [rule.select(n) for n in (0, 1, 2)] == [0, 0, 1]


def test_single_form_rule():
    rule = PluralRule.parse("nplurals=1; plural=0;")
    assert rule.nplurals == 1
    assert rule.select(0) == 0
    assert rule.select(42) == 0


def test_missing_trailing_semicolon_accepted():
    rule = PluralRule.parse("nplurals=2; plural=n != 1")
    assert rule.expression == "n != 1"
    assert rule.select(3) == 1


def test_out_of_range_result_selects_first_slot():
    rule = PluralRule.parse("nplurals=2; plural=n;")
    assert rule.select(1) == 1
    assert rule.select(5) == 0


def test_division_by_zero_yields_zero():
    rule = PluralRule.parse("nplurals=2; plural=n / 0;")
    assert rule.select(7) == 0
    assert evaluate(compile_expression("n % 0"), 7) == 0


@pytest.mark.parametrize("value", [
    "",
    "garbage",
    "nplurals=0; plural=0;",
    "nplurals=2; plural=n +;",
    "nplurals=2; plural=(n != 1;",
    "nplurals=2; plural=n != 1 1;",
    "nplurals=2; plural=x;",
    "nplurals=INTEGER; plural=EXPRESSION;",
])
def test_invalid_rules_rejected(value):
    with pytest.raises(ValueError):
        PluralRule.parse(value)


def test_program_encoding():
    assert compile_expression("n") == bytes([OP_N])
    assert compile_expression("1") == bytes([OP_CONST, 1, 0, 0, 0])


@pytest.mark.parametrize("expression, n, expected", [
    ("n + 2 * 3", 1, 7),
    ("(n + 2) * 3", 1, 9),
    ("!n", 0, 1),
    ("!n", 3, 0),
    ("n == 1 ? 5 : 6", 1, 5),
    ("n == 1 ? 5 : 6", 2, 6),
    ("n == 0 ? 0 : n == 1 ? 1 : 2", 0, 0),
    ("n == 0 ? 0 : n == 1 ? 1 : 2", 1, 1),
    ("n == 0 ? 0 : n == 1 ? 1 : 2", 9, 2),
    ("n > 1 || n == 0", 0, 1),
    ("n > 1 && n < 5", 5, 0),
    ("10 - n - 2", 3, 5),
])
def test_operator_semantics(expression, n, expected):
    assert evaluate(compile_expression(expression), n) == expected


def test_malformed_program_rejected():
    with pytest.raises(ValueError):
        evaluate(bytes([OP_CONST, 1]), 1)
    with pytest.raises(ValueError):
        evaluate(bytes([OP_N, OP_N]), 1)


def test_arithmetic_is_unsigned():
    """Subtraction below zero wraps like C's unsigned long."""
    assert evaluate(compile_expression("n - 1"), 0) == 2**64 - 1
    assert evaluate(compile_expression("n - 1 > 5"), 0) == 1
    assert evaluate(compile_expression("n"), -1) == 2**64 - 1

    rule = PluralRule.parse("nplurals=2; plural=n - 1;")
    assert rule.select(1) == 0
    assert rule.select(2) == 1
    assert rule.select(0) == 0
