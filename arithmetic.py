"""Arithmetic extraction for spoken or typed math questions."""

from __future__ import annotations

import re
from typing import Optional

from models import MathOperands, Operator

MATH_KEYWORDS = (
    "plus",
    "add",
    "minus",
    "subtract",
    "multiply",
    "times",
    "divide",
    "equals",
    "what is",
)

GUIDANCE_REPLY = (
    "I can help with basic math! Please provide two numbers and an operation "
    "(like 5 + 3 or 10 times 2)."
)
ZERO_DIVISION_REPLY = "I can't divide by zero! That would break the universe! 😅"

_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile(r"[+\-*/=]")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")

# Checked in order; the first cue present wins.
_OPERATOR_CUES = (
    (Operator.ADD, ("plus", "add", "+")),
    (Operator.SUBTRACT, ("minus", "subtract", "-")),
    (Operator.MULTIPLY, ("times", "multiply", "*", "x")),
    (Operator.DIVIDE, ("divide", "/")),
)


def is_math_question(text: str) -> bool:
    lowered = text.lower()
    if not _DIGIT_RE.search(lowered):
        return False
    if _SYMBOL_RE.search(lowered):
        return True
    return any(keyword in lowered for keyword in MATH_KEYWORDS)


def extract_operands(text: str) -> Optional[MathOperands]:
    numbers = _NUMBER_RE.findall(text)
    if len(numbers) < 2:
        return None
    lowered = text.lower()
    operator = None
    for candidate, cues in _OPERATOR_CUES:
        if any(cue in lowered for cue in cues):
            operator = candidate
            break
    return MathOperands(first=float(numbers[0]), second=float(numbers[1]), operator=operator)


def evaluate(text: str) -> str:
    operands = extract_operands(text)
    if operands is None:
        return GUIDANCE_REPLY

    first = format_number(operands.first)
    second = format_number(operands.second)
    operator = operands.operator
    if operator is None:
        return (
            f"I see the numbers {first} and {second}. Could you specify the operation? "
            "For example: add, subtract, multiply, or divide."
        )

    if operator == Operator.ADD:
        result = operands.first + operands.second
    elif operator == Operator.SUBTRACT:
        result = operands.first - operands.second
    elif operator == Operator.MULTIPLY:
        result = operands.first * operands.second
    else:
        if operands.second == 0:
            return ZERO_DIVISION_REPLY
        result = operands.first / operands.second
    return f"{first} {operator.value} {second} equals {format_number(result)}."


def format_number(value: float) -> str:
    """Render a float the way a chat reply shows it: ``8`` rather than ``8.0``."""
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)
