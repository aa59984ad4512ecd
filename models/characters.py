"""Player character and inventory models for the AI DM server."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

STARTER_INVENTORY = [
    "Longsword",
    "Shield",
    "Chain Mail",
    "Healing Potion (2d4+2)",
    "Rope (50 ft)",
    "Torch (3)",
]


class ItemStack(BaseModel):
    """A named stack of identical items."""
    name: str
    quantity: int = Field(default=1, ge=1)


class HitPoints(BaseModel):
    current: int = 30
    max: int = 30


class AbilityScores(BaseModel):
    """The six core ability scores."""
    strength: int = 14
    dexterity: int = 12
    constitution: int = 14
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10


class Resources(BaseModel):
    gold: int = 10
    special_abilities: dict[str, int] = Field(
        default_factory=lambda: {"second_wind": 1, "action_surge": 1}
    )


class Player(BaseModel):
    """The player character record stored under the ``player`` key."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = "Adventurer"
    character_class: str = Field(default="Fighter", alias="class")
    level: int = 1
    hp: HitPoints = Field(default_factory=HitPoints)
    ac: int = 15
    stats: AbilityScores = Field(default_factory=AbilityScores)
    inventory: list[ItemStack] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)   # e.g., ["poisoned"]
    resources: Resources = Field(default_factory=Resources)
    location: str = "start"
    flags: dict[str, Any] = Field(default_factory=dict)
    quest_log: list[Any] = Field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        """Plain JSON record, using ``class`` as the field name."""
        return self.model_dump(mode="json", by_alias=True)
