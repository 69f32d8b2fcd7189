from __future__ import annotations

import dataclasses
import random
import uuid
from typing import Optional

from mathcash.core.arithmetic import (
    ADDITION,
    DIVISION,
    MULTIPLICATION,
    SUBTRACTION,
    calculate_answer,
    format_problem,
    generate_operands,
)
from mathcash.core.difficulty import DifficultyTable, default_table
from mathcash.core.models import MathChallenge

BOSS_REWARD_MULTIPLIER = 3


def new_id(prefix: str, rng: random.Random) -> str:
    """Random id drawn from *rng*, so a seeded generator repeats its ids."""
    return f"{prefix}-{uuid.UUID(int=rng.getrandbits(128), version=4).hex}"


def generate_challenge(
    difficulty: str,
    rng: Optional[random.Random] = None,
    table: Optional[DifficultyTable] = None,
    prefix: str = "challenge",
) -> MathChallenge:
    """Build a challenge using an operation allowed at *difficulty*."""
    rng = rng or random.Random()
    if table is None:
        table = default_table()
    tier = table.get(table.resolve(difficulty))

    operation = rng.choice(tier.operations)
    operands = generate_operands(operation, tier.operand_range, rng)
    return MathChallenge(
        id=new_id(prefix, rng),
        operation=operation,
        operands=operands,
        correct_answer=calculate_answer(operation, operands),
        difficulty=tier.key,
        reward=tier.reward,
    )


def generate_boss_challenge(
    difficulty: str,
    rng: Optional[random.Random] = None,
    table: Optional[DifficultyTable] = None,
) -> MathChallenge:
    """Challenge one tier above *difficulty* paying three times the reward."""
    if table is None:
        table = default_table()
    challenge = generate_challenge(table.next(difficulty), rng, table, prefix="boss")
    return dataclasses.replace(challenge, reward=challenge.reward * BOSS_REWARD_MULTIPLIER)


def is_correct(challenge: MathChallenge, answer: int) -> bool:
    return answer == challenge.correct_answer


def format_challenge(challenge: MathChallenge) -> str:
    return format_problem(challenge.operation, challenge.operands)


def challenge_hint(challenge: MathChallenge) -> str:
    a, b = challenge.operands
    if challenge.operation == ADDITION:
        return f"Hint: Add the numbers together! {a} + {b} = ?"
    if challenge.operation == SUBTRACTION:
        return f"Hint: Take away the second number! {a} - {b} = ?"
    if challenge.operation == MULTIPLICATION:
        return f"Hint: Multiply the numbers! {a} × {b} = ?"
    if challenge.operation == DIVISION:
        return f"Hint: Divide the first number by the second! {a} ÷ {b} = ?"
    return "Think about what operation you need to do!"
