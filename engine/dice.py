"""Dice rolling utilities: notation parsing, rolls, advantage and disadvantage."""

import random
import re
from typing import Literal

from pydantic import BaseModel

from config import MAX_BREAKDOWN_DICE
from engine.errors import InvalidNotation

NOTATION_PATTERN = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$", re.IGNORECASE | re.ASCII)


class DiceNotation(BaseModel):
    """Parsed NdS[+/-M] dice notation."""
    count: int
    sides: int
    modifier: int = 0


class RollResult(BaseModel):
    """Result of a dice roll."""
    result: int                     # subtotal + modifier
    breakdown: str                  # e.g. "2d6 (3, 5) +2"
    raw_rolls: list[int]
    modifier: int
    context: str = ""
    notation: str
    subtotal: int                   # Sum of raw_rolls before the modifier


class AdvantageRollResult(RollResult):
    """The chosen roll of an advantage/disadvantage pair, with both rolls kept for audit."""
    mode: Literal["advantage", "disadvantage"]
    rolls: list[RollResult]         # Both rolls, in the order they were made
    chosen_result: int
    discarded_result: int


def parse_dice_notation(notation: str) -> DiceNotation:
    """Parse dice notation like '2d6+3', '1d20', '4d6-1'.

    Args:
        notation: Dice notation string.

    Returns:
        DiceNotation with count, sides and modifier.

    Raises:
        InvalidNotation: If the string is not valid notation, or asks for
            zero dice or zero-sided dice.
    """
    match = NOTATION_PATTERN.match(notation.strip()) if isinstance(notation, str) else None
    if not match:
        raise InvalidNotation(str(notation))

    count = int(match.group(1))
    sides = int(match.group(2))
    if count < 1 or sides < 1:
        raise InvalidNotation(notation)

    modifier = int(match.group(3)) if match.group(3) else 0
    return DiceNotation(count=count, sides=sides, modifier=modifier)


def format_notation(dice: DiceNotation) -> str:
    """Render a DiceNotation back into canonical 'NdS+M' form."""
    text = f"{dice.count}d{dice.sides}"
    if dice.modifier:
        text += f"{dice.modifier:+d}"
    return text


def roll_die(sides: int, rng: random.Random | None = None) -> int:
    """Roll a single die, returning a value in [1, sides]."""
    if sides < 1:
        raise ValueError(f"A die needs at least one side, got {sides}")
    rng = rng or random.Random()
    return rng.randint(1, sides)


def format_breakdown(dice: DiceNotation, rolls: list[int]) -> str:
    """Build the human-readable breakdown for a roll.

    Individual rolls are listed only up to MAX_BREAKDOWN_DICE dice so that
    something like "20d6" stays readable.
    """
    breakdown = f"{dice.count}d{dice.sides}"
    if len(rolls) <= MAX_BREAKDOWN_DICE:
        breakdown += f" ({', '.join(str(r) for r in rolls)})"
    if dice.modifier != 0:
        breakdown += f" {dice.modifier:+d}"
    return breakdown


def roll_dice(
    notation: str,
    context: str = "",
    rng: random.Random | None = None,
) -> RollResult:
    """Parse and roll dice notation.

    Args:
        notation: Dice notation string (e.g. "2d6+3").
        context: What the roll is for (e.g. "attack roll").
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        RollResult with total, breakdown, individual rolls and modifier.
    """
    rng = rng or random.Random()
    dice = parse_dice_notation(notation)

    rolls = [roll_die(dice.sides, rng) for _ in range(dice.count)]
    subtotal = sum(rolls)

    return RollResult(
        result=subtotal + dice.modifier,
        breakdown=format_breakdown(dice, rolls),
        raw_rolls=rolls,
        modifier=dice.modifier,
        context=context,
        notation=notation.strip(),
        subtotal=subtotal,
    )


def _roll_pair(
    notation: str,
    context: str,
    mode: Literal["advantage", "disadvantage"],
    rng: random.Random | None,
) -> AdvantageRollResult:
    rng = rng or random.Random()
    first = roll_dice(notation, context, rng)
    second = roll_dice(notation, context, rng)

    # Ties keep the first roll
    if mode == "advantage":
        keep_first = first.result >= second.result
        tag = "ADV"
    else:
        keep_first = first.result <= second.result
        tag = "DIS"
    chosen, discarded = (first, second) if keep_first else (second, first)

    return AdvantageRollResult(
        **chosen.model_dump(exclude={"breakdown"}),
        breakdown=f"{chosen.breakdown} [{tag}: chose {chosen.result} over {discarded.result}]",
        mode=mode,
        rolls=[first, second],
        chosen_result=chosen.result,
        discarded_result=discarded.result,
    )


def roll_with_advantage(
    notation: str,
    context: str = "",
    rng: random.Random | None = None,
) -> AdvantageRollResult:
    """Roll the notation twice and keep the higher result."""
    return _roll_pair(notation, context, "advantage", rng)


def roll_with_disadvantage(
    notation: str,
    context: str = "",
    rng: random.Random | None = None,
) -> AdvantageRollResult:
    """Roll the notation twice and keep the lower result."""
    return _roll_pair(notation, context, "disadvantage", rng)


def roll_d20(
    advantage: bool = False,
    disadvantage: bool = False,
    context: str = "",
    rng: random.Random | None = None,
) -> RollResult:
    """Roll a d20, optionally with advantage or disadvantage.

    Args:
        advantage: Roll twice, take the higher.
        disadvantage: Roll twice, take the lower.
        context: What the roll is for.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The RollResult of the kept d20.
    """
    if advantage and disadvantage:
        # They cancel out, straight roll
        return roll_dice("1d20", context, rng)

    if advantage:
        return roll_with_advantage("1d20", f"{context} (with advantage)".strip(), rng)

    if disadvantage:
        return roll_with_disadvantage("1d20", f"{context} (with disadvantage)".strip(), rng)

    return roll_dice("1d20", context, rng)
