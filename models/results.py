"""Combat and state result models returned by the engine and the tools."""

from typing import Any, Literal

from pydantic import BaseModel


class AttackOutcome(BaseModel):
    """The server's resolution of a single attack."""
    natural_roll: int               # The kept d20 face
    attack_bonus: int
    total_attack: int
    target_ac: int
    hit: bool
    critical: bool
    critical_miss: bool
    damage: int = 0
    damage_breakdown: str = ""      # e.g. "2d8 (4, 7) +3 = 14"
    damage_rolls: list[int] | None = None
    roll_mode: Literal["normal", "advantage", "disadvantage"] = "normal"
    attack_breakdown: str = ""
    context: str = "Attack"


class DamageResult(BaseModel):
    """HP change after damage is applied."""
    previous_hp: int
    damage: int
    new_hp: int
    max_hp: int
    hp_lost: int
    is_dead: bool
    is_bloodied: bool
    message: str


class HealingResult(BaseModel):
    """HP change after healing is applied."""
    previous_hp: int
    healing: int                    # Actual HP restored
    new_hp: int
    max_hp: int
    overheal: int                   # Healing wasted above max_hp
    at_full_health: bool
    message: str


class InitiativeResult(BaseModel):
    """An initiative roll."""
    roll: int
    dex_modifier: int
    total: int
    breakdown: str
    advantage: bool = False


class SavingThrowResult(BaseModel):
    """A saving throw against a DC."""
    roll: int
    modifier: int
    total: int
    dc: int
    success: bool
    margin: int                     # total - dc
    breakdown: str
    save_name: str = "Saving Throw"
    message: str


class StateResult(BaseModel):
    """Outcome of a State Store operation.

    Operations only set the fields they report, so serialise with
    ``exclude_unset=True`` to keep an explicit ``value: None`` while dropping
    fields the operation never touched.
    """
    success: bool
    key: str | None = None
    value: Any = None
    message: str | None = None
    state: dict[str, Any] | None = None
    player: dict[str, Any] | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
