"""Operand generation and answer calculation for the four basic operations."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

ADDITION = "addition"
SUBTRACTION = "subtraction"
MULTIPLICATION = "multiplication"
DIVISION = "division"
OPERATIONS = (ADDITION, SUBTRACTION, MULTIPLICATION, DIVISION)

SYMBOLS = {
    ADDITION: "+",
    SUBTRACTION: "-",
    MULTIPLICATION: "×",
    DIVISION: "÷",
}

# Factors and divisors stay on the times table.
PRODUCT_CAP = 12


@dataclass(frozen=True)
class OperandRange:
    """Inclusive range operands are drawn from."""

    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low < 1:
            raise ValueError(f"Operand range must start at 1 or more, got {self.low}")
        if self.low > self.high:
            raise ValueError(f"Operand range is empty: [{self.low}, {self.high}]")

    def capped(self, cap: int = PRODUCT_CAP) -> "OperandRange":
        """Same range with the top clamped to *cap*, never below ``low``."""
        return OperandRange(self.low, max(self.low, min(self.high, cap)))

    def draw(self, rng: random.Random) -> int:
        return rng.randint(self.low, self.high)


def check_operation(operation: str) -> None:
    if operation not in OPERATIONS:
        raise ValueError(f"Unsupported operation: {operation!r}")


def generate_operands(
    operation: str,
    operand_range: OperandRange,
    rng: Optional[random.Random] = None,
) -> Tuple[int, int]:
    """Draw two operands for *operation* whose answer is a whole number >= 0.

    Subtraction operands come larger-first. Division is built as
    ``divisor * quotient`` so it always divides evenly.
    """
    check_operation(operation)
    rng = rng or random.Random()

    if operation == ADDITION:
        return operand_range.draw(rng), operand_range.draw(rng)
    if operation == SUBTRACTION:
        a, b = operand_range.draw(rng), operand_range.draw(rng)
        return max(a, b), min(a, b)
    if operation == MULTIPLICATION:
        small = operand_range.capped()
        return small.draw(rng), small.draw(rng)

    divisor = operand_range.capped().draw(rng)
    quotient = operand_range.draw(rng)
    return divisor * quotient, divisor


def calculate_answer(operation: str, operands: Sequence[int]) -> int:
    check_operation(operation)
    if len(operands) != 2:
        raise ValueError(f"Expected exactly two operands, got {len(operands)}")
    a, b = operands

    if operation == ADDITION:
        return a + b
    if operation == SUBTRACTION:
        return abs(a - b)
    if operation == MULTIPLICATION:
        return a * b
    if b == 0 or a % b:
        raise ValueError(f"{a} is not evenly divisible by {b}")
    return a // b


def format_problem(operation: str, operands: Sequence[int]) -> str:
    check_operation(operation)
    a, b = operands
    return f"{a} {SYMBOLS[operation]} {b} = ?"
