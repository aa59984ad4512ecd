"""D&D 5e combat rules: attack resolution, damage, healing, initiative, saves.

Every function here is pure with respect to its arguments. Nothing reads or
writes the State Store; persisting a new HP value is the caller's job.
"""

from __future__ import annotations

import random
from typing import Literal

from config import DEFAULT_CRIT_RANGE
from engine.dice import format_notation, parse_dice_notation, roll_d20, roll_dice
from models.results import (
    AttackOutcome,
    DamageResult,
    HealingResult,
    InitiativeResult,
    SavingThrowResult,
)

ABILITY_NAMES = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
)


def calculate_ability_modifier(score: int) -> int:
    """Calculate ability modifier from a score using the 5e formula.

    Args:
        score: The ability score (e.g. 16).

    Returns:
        The modifier (e.g. +3 for score 16).
    """
    return (score - 10) // 2


def ability_modifiers(stats: dict[str, int]) -> dict[str, int]:
    """Modifiers for each of the six ability scores present in ``stats``."""
    return {
        name: calculate_ability_modifier(stats[name])
        for name in ABILITY_NAMES
        if isinstance(stats.get(name), int)
    }


def _roll_mode(advantage: bool, disadvantage: bool) -> Literal["normal", "advantage", "disadvantage"]:
    """Which d20 mode applies; advantage and disadvantage together cancel."""
    if advantage and not disadvantage:
        return "advantage"
    if disadvantage and not advantage:
        return "disadvantage"
    return "normal"


def _signed(value: int) -> str:
    return f" {value:+d}" if value else ""


def resolve_attack(
    target_ac: int,
    damage_dice: str,
    attack_bonus: int = 0,
    damage_bonus: int = 0,
    advantage: bool = False,
    disadvantage: bool = False,
    crit_range: int = DEFAULT_CRIT_RANGE,
    context: str = "Attack",
    rng: random.Random | None = None,
) -> AttackOutcome:
    """Resolve an attack: roll to hit, roll damage if hit.

    A natural 1 always misses. A natural roll at or above ``crit_range``
    always hits and doubles the number of damage dice; flat bonuses (the
    notation's own modifier and ``damage_bonus``) are added once.

    Args:
        target_ac: The target's armor class.
        damage_dice: Damage notation (e.g. "1d8+3").
        attack_bonus: Added to the d20 roll.
        damage_bonus: Added to the damage roll.
        advantage: Roll the d20 twice, keep the higher.
        disadvantage: Roll the d20 twice, keep the lower.
        crit_range: Lowest natural roll that counts as a critical hit.
        context: Description of the attack.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        AttackOutcome with full details.

    Raises:
        InvalidNotation: If ``damage_dice`` is not valid notation.
        ValueError: If ``crit_range`` is outside 2-20.
    """
    if not 2 <= crit_range <= 20:
        raise ValueError(f"crit_range must be between 2 and 20, got {crit_range}")

    # Validate before rolling anything
    dice = parse_dice_notation(damage_dice)
    rng = rng or random.Random()

    mode = _roll_mode(advantage, disadvantage)
    attack_roll = roll_d20(
        advantage=mode == "advantage",
        disadvantage=mode == "disadvantage",
        context=context,
        rng=rng,
    )
    natural_roll = attack_roll.raw_rolls[0]
    total_attack = attack_roll.result + attack_bonus

    critical_miss = natural_roll == 1
    critical = natural_roll >= crit_range

    if critical_miss:
        hit = False
    elif critical:
        hit = True
    else:
        hit = total_attack >= target_ac

    attack_breakdown = (
        f"1d20 ({natural_roll}){_signed(attack_bonus)} = {total_attack} vs AC {target_ac}"
    )
    if mode != "normal":
        attack_breakdown += f" [{'ADV' if mode == 'advantage' else 'DIS'}]"

    outcome = AttackOutcome(
        natural_roll=natural_roll,
        attack_bonus=attack_bonus,
        total_attack=total_attack,
        target_ac=target_ac,
        hit=hit,
        critical=critical,
        critical_miss=critical_miss,
        roll_mode=mode,
        attack_breakdown=attack_breakdown,
        context=context,
    )
    if not hit:
        return outcome

    if critical:
        dice = dice.model_copy(update={"count": dice.count * 2})
    damage_roll = roll_dice(
        format_notation(dice),
        "Critical Damage" if critical else "Damage",
        rng,
    )
    damage = max(0, damage_roll.result + damage_bonus)

    outcome.damage = damage
    outcome.damage_rolls = damage_roll.raw_rolls
    outcome.damage_breakdown = f"{damage_roll.breakdown}{_signed(damage_bonus)} = {damage}"
    return outcome


def apply_damage(current_hp: int, max_hp: int, damage: int) -> DamageResult:
    """Apply damage to a creature's HP.

    Args:
        current_hp: Current hit points.
        max_hp: Maximum hit points.
        damage: Damage to apply.

    Returns:
        DamageResult; new HP is clamped into [0, max_hp].
    """
    new_hp = max(0, min(max_hp, current_hp - damage))

    if new_hp == 0:
        message = "Reduced to 0 HP!"
    else:
        message = f"HP: {current_hp} -> {new_hp} ({damage} damage taken)"

    return DamageResult(
        previous_hp=current_hp,
        damage=damage,
        new_hp=new_hp,
        max_hp=max_hp,
        hp_lost=current_hp - new_hp,
        is_dead=new_hp == 0,
        is_bloodied=0 < new_hp <= max_hp / 2,
        message=message,
    )


def apply_healing(current_hp: int, max_hp: int, healing: int) -> HealingResult:
    """Apply healing to a creature's HP, never exceeding max_hp."""
    new_hp = max(0, min(max_hp, current_hp + healing))
    actual_healing = new_hp - current_hp

    return HealingResult(
        previous_hp=current_hp,
        healing=actual_healing,
        new_hp=new_hp,
        max_hp=max_hp,
        overheal=healing - actual_healing,
        at_full_health=new_hp == max_hp,
        message=f"HP: {current_hp} -> {new_hp} (+{actual_healing} HP restored)",
    )


def roll_initiative(
    dex_modifier: int = 0,
    advantage: bool = False,
    rng: random.Random | None = None,
) -> InitiativeResult:
    """Roll initiative: d20 + dexterity modifier.

    Args:
        dex_modifier: Dexterity modifier to add.
        advantage: Roll with advantage.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The initiative result.
    """
    roll = roll_d20(advantage=advantage, context="Initiative", rng=rng)
    natural = roll.raw_rolls[0]
    total = roll.result + dex_modifier

    return InitiativeResult(
        roll=natural,
        dex_modifier=dex_modifier,
        total=total,
        breakdown=f"1d20 ({natural}){_signed(dex_modifier)} = {total}",
        advantage=advantage,
    )


def resolve_saving_throw(
    dc: int,
    modifier: int = 0,
    advantage: bool = False,
    disadvantage: bool = False,
    save_name: str = "Saving Throw",
    rng: random.Random | None = None,
) -> SavingThrowResult:
    """Resolve a saving throw: d20 + modifier against a DC."""
    mode = _roll_mode(advantage, disadvantage)
    roll = roll_d20(
        advantage=mode == "advantage",
        disadvantage=mode == "disadvantage",
        context=save_name,
        rng=rng,
    )
    natural = roll.raw_rolls[0]
    total = roll.result + modifier
    success = total >= dc
    verdict = "Success!" if success else "Failure!"

    return SavingThrowResult(
        roll=natural,
        modifier=modifier,
        total=total,
        dc=dc,
        success=success,
        margin=total - dc,
        breakdown=f"1d20 ({natural}){_signed(modifier)} = {total} vs DC {dc}",
        save_name=save_name,
        message=f"{verdict} ({total} vs DC {dc})",
    )
