"""Tool-call request, argument, and result models for the tool protocol."""

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import DEFAULT_CRIT_RANGE


class ToolCall(BaseModel):
    """One tool invocation extracted from model output."""
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """The outcome of one tool call: either ``result`` or ``error`` is set."""
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json(self) -> dict[str, Any]:
        if self.ok:
            return self.model_dump(mode="json", exclude={"error"})
        return self.model_dump(mode="json", exclude={"result"})


class ResponseSegment(BaseModel):
    """A piece of model output: narrative text or a parsed tool call."""
    type: Literal["narrative", "tool"]
    content: str | None = None      # For narrative segments
    tool: str | None = None         # For tool segments
    args: dict[str, Any] | None = None


class TurnOutcome(BaseModel):
    """Everything produced from one model response."""
    narrative: str
    tool_calls: list[ToolCall]
    results: list[ToolResult]

    def to_json(self) -> dict[str, Any]:
        return {
            "narrative": self.narrative,
            "tool_calls": [call.model_dump(mode="json") for call in self.tool_calls],
            "results": [result.to_json() for result in self.results],
        }


# ---------------------------------------------------------------------------
# Tool arguments. Field aliases are the camelCase names models are told to use.
# ---------------------------------------------------------------------------


class ToolArgs(BaseModel):
    """Base for tool arguments: accept aliases or field names, ignore extras."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Models often send null for "not given"; let the field default apply
    drop_nulls: ClassVar[bool] = True

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if cls.drop_nulls and isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class NoArgs(ToolArgs):
    pass


class RollDiceArgs(ToolArgs):
    notation: str
    context: str = ""


class StateKeyArgs(ToolArgs):
    key: str


class SaveStateArgs(ToolArgs):
    drop_nulls: ClassVar[bool] = False

    key: str
    value: Any


class UpdateStateArgs(ToolArgs):
    drop_nulls: ClassVar[bool] = False

    key: str
    updates: Any


class InitializePlayerArgs(ToolArgs):
    name: str
    character_class: str | None = Field(default=None, alias="class")
    level: int | None = None
    max_hp: int | None = Field(default=None, alias="maxHp", gt=0)
    ac: int | None = None
    stats: dict[str, int] | None = None
    inventory: list[Any] | None = None
    gold: int | None = Field(default=None, ge=0)
    location: str | None = None

    def to_player_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ResolveAttackArgs(ToolArgs):
    target_ac: int = Field(alias="targetAC")
    damage_dice: str = Field(alias="damageDice")
    attack_bonus: int = Field(default=0, alias="attackBonus")
    damage_bonus: int = Field(default=0, alias="damageBonus")
    advantage: bool = False
    disadvantage: bool = False
    crit_range: int = Field(default=DEFAULT_CRIT_RANGE, alias="critRange", ge=2, le=20)
    context: str = "Attack"


class ApplyDamageArgs(ToolArgs):
    current_hp: int = Field(alias="currentHP")
    max_hp: int = Field(alias="maxHP", gt=0)
    damage: int = Field(ge=0)


class ApplyHealingArgs(ToolArgs):
    current_hp: int = Field(alias="currentHP")
    max_hp: int = Field(alias="maxHP", gt=0)
    healing: int = Field(ge=0)


class RollInitiativeArgs(ToolArgs):
    dex_modifier: int = Field(default=0, alias="dexModifier")
    advantage: bool = False


class SavingThrowArgs(ToolArgs):
    dc: int
    modifier: int = 0
    advantage: bool = False
    disadvantage: bool = False
    save_name: str = Field(default="Saving Throw", alias="saveName")
