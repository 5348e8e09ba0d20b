from __future__ import annotations

import pytest

from arithmetic import (
    GUIDANCE_REPLY,
    ZERO_DIVISION_REPLY,
    evaluate,
    extract_operands,
    format_number,
    is_math_question,
)
from models import Operator


@pytest.mark.parametrize(
    "text",
    ["5 + 3", "what is 4 times 2", "10 divided by 2", "7 minus 1", "2=2", "add 1 and 9", "12/4"],
)
def test_math_trigger_with_digit_and_cue(text: str) -> None:
    assert is_math_question(text) is True


@pytest.mark.parametrize("text", ["what is love", "plus ultra", "a - b", "", "divide and conquer"])
def test_math_trigger_requires_digit(text: str) -> None:
    assert is_math_question(text) is False


def test_digit_without_cue_is_not_math() -> None:
    assert is_math_question("I have 3 cats") is False


def test_evaluate_addition() -> None:
    assert evaluate("5 plus 3") == "5 plus 3 equals 8."


def test_evaluate_symbols_and_keywords() -> None:
    assert evaluate("what is 10 - 4") == "10 minus 4 equals 6."
    assert evaluate("6 times 7") == "6 times 7 equals 42."
    assert evaluate("6 x 7") == "6 times 7 equals 42."
    assert evaluate("9 / 2") == "9 divided by 2 equals 4.5."


def test_evaluate_decimals_use_float_display() -> None:
    assert evaluate("0.1 plus 0.2") == "0.1 plus 0.2 equals 0.30000000000000004."
    assert evaluate("2.5 + 2.5") == "2.5 plus 2.5 equals 5."


def test_divide_by_zero_is_a_refusal() -> None:
    assert evaluate("10 divided by 0") == ZERO_DIVISION_REPLY


def test_single_number_returns_guidance() -> None:
    assert evaluate("7") == GUIDANCE_REPLY
    assert extract_operands("what is 7") is None


def test_missing_operator_echoes_numbers() -> None:
    reply = evaluate("what is 3 and 4")
    assert reply.startswith("I see the numbers 3 and 4.")


def test_operator_precedence_prefers_addition() -> None:
    operands = extract_operands("add 2 to 3 then subtract")
    assert operands is not None
    assert operands.operator == Operator.ADD
    assert (operands.first, operands.second) == (2.0, 3.0)


def test_only_first_two_numbers_are_used() -> None:
    assert evaluate("1 + 2 + 3") == "1 plus 2 equals 3."


def test_format_number() -> None:
    assert format_number(8.0) == "8"
    assert format_number(-2.0) == "-2"
    assert format_number(4.5) == "4.5"
