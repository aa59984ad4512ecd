"""Tool registry and dispatch: route parsed tool calls to the game engine.

Each tool pairs a pydantic argument model with a handler. Calls run one at a
time in source order, and every failure (unknown tool, bad arguments, bad
dice notation, unexpected exception) is captured on that call's result so
the rest of the batch still runs.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from engine.dice import roll_dice, roll_with_advantage, roll_with_disadvantage
from engine.errors import UnknownTool
from engine.rules import (
    apply_damage,
    apply_healing,
    resolve_attack,
    resolve_saving_throw,
    roll_initiative,
)
from engine.state import StateStore
from engine.tool_parser import extract_narrative, parse_tool_calls
from models.actions import (
    ApplyDamageArgs,
    ApplyHealingArgs,
    InitializePlayerArgs,
    NoArgs,
    ResolveAttackArgs,
    RollDiceArgs,
    RollInitiativeArgs,
    SaveStateArgs,
    SavingThrowArgs,
    StateKeyArgs,
    ToolArgs,
    ToolCall,
    ToolResult,
    TurnOutcome,
    UpdateStateArgs,
)
from models.results import StateResult

logger = logging.getLogger("aidm.tools")

Handler = Callable[[StateStore, Any, random.Random | None], BaseModel]


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool."""
    name: str
    description: str
    args_model: type[ToolArgs]
    handler: Handler

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.args_model.model_json_schema(by_alias=True),
        }


TOOLS: dict[str, ToolSpec] = {}


def register_tool(name: str, description: str, args_model: type[ToolArgs]) -> Callable[[Handler], Handler]:
    """Decorator adding a handler to the TOOLS registry."""
    def decorator(handler: Handler) -> Handler:
        TOOLS[name] = ToolSpec(name, description, args_model, handler)
        return handler
    return decorator


# ---------------------------------------------------------------------------
# Dice
# ---------------------------------------------------------------------------

@register_tool(
    "roll_dice",
    'Roll dice using standard D&D notation (e.g. "2d6+3", "1d20"). Returns result and breakdown.',
    RollDiceArgs,
)
def _roll_dice(store: StateStore, args: RollDiceArgs, rng: random.Random | None) -> BaseModel:
    return roll_dice(args.notation, args.context, rng)


@register_tool(
    "roll_with_advantage",
    "Roll dice with advantage (roll twice, take the higher result).",
    RollDiceArgs,
)
def _roll_with_advantage(store: StateStore, args: RollDiceArgs, rng: random.Random | None) -> BaseModel:
    return roll_with_advantage(args.notation, args.context, rng)


@register_tool(
    "roll_with_disadvantage",
    "Roll dice with disadvantage (roll twice, take the lower result).",
    RollDiceArgs,
)
def _roll_with_disadvantage(store: StateStore, args: RollDiceArgs, rng: random.Random | None) -> BaseModel:
    return roll_with_disadvantage(args.notation, args.context, rng)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@register_tool(
    "save_state",
    "Save game state data (player stats, flags, etc.) under a key, replacing any previous value.",
    SaveStateArgs,
)
def _save_state(store: StateStore, args: SaveStateArgs, rng: random.Random | None) -> BaseModel:
    return store.save(args.key, args.value)


@register_tool("load_state", "Load game state data stored under a key.", StateKeyArgs)
def _load_state(store: StateStore, args: StateKeyArgs, rng: random.Random | None) -> BaseModel:
    return store.load(args.key)


@register_tool(
    "update_state",
    "Update existing state with partial changes (deep merge). For player inventory use "
    '{"add": item, "quantity": n} or {"remove": name, "quantity": n}.',
    UpdateStateArgs,
)
def _update_state(store: StateStore, args: UpdateStateArgs, rng: random.Random | None) -> BaseModel:
    return store.update(args.key, args.updates)


@register_tool("get_all_state", "Get all current game state data.", NoArgs)
def _get_all_state(store: StateStore, args: NoArgs, rng: random.Random | None) -> BaseModel:
    return store.get_all()


@register_tool("reset_state", "Reset all game state (start a new game).", NoArgs)
def _reset_state(store: StateStore, args: NoArgs, rng: random.Random | None) -> BaseModel:
    return store.reset()


@register_tool(
    "initialize_player",
    "Initialize the player with default stats for anything not given. Use at the start of a new game.",
    InitializePlayerArgs,
)
def _initialize_player(store: StateStore, args: InitializePlayerArgs, rng: random.Random | None) -> BaseModel:
    return store.initialize_player(args.to_player_data())


# ---------------------------------------------------------------------------
# Combat
# ---------------------------------------------------------------------------

@register_tool(
    "resolve_attack",
    "Resolve a complete attack: roll to hit against AC, roll damage if hit. Handles crits and misses.",
    ResolveAttackArgs,
)
def _resolve_attack(store: StateStore, args: ResolveAttackArgs, rng: random.Random | None) -> BaseModel:
    return resolve_attack(
        target_ac=args.target_ac,
        damage_dice=args.damage_dice,
        attack_bonus=args.attack_bonus,
        damage_bonus=args.damage_bonus,
        advantage=args.advantage,
        disadvantage=args.disadvantage,
        crit_range=args.crit_range,
        context=args.context,
        rng=rng,
    )


@register_tool(
    "apply_damage",
    "Apply damage to a creature, calculating new HP and status (dead, bloodied).",
    ApplyDamageArgs,
)
def _apply_damage(store: StateStore, args: ApplyDamageArgs, rng: random.Random | None) -> BaseModel:
    return apply_damage(args.current_hp, args.max_hp, args.damage)


@register_tool(
    "apply_healing",
    "Apply healing to a creature, calculating new HP (cannot exceed max).",
    ApplyHealingArgs,
)
def _apply_healing(store: StateStore, args: ApplyHealingArgs, rng: random.Random | None) -> BaseModel:
    return apply_healing(args.current_hp, args.max_hp, args.healing)


@register_tool(
    "roll_initiative",
    "Roll initiative for combat (1d20 + DEX modifier).",
    RollInitiativeArgs,
)
def _roll_initiative(store: StateStore, args: RollInitiativeArgs, rng: random.Random | None) -> BaseModel:
    return roll_initiative(args.dex_modifier, args.advantage, rng)


@register_tool(
    "resolve_saving_throw",
    "Resolve a saving throw (1d20 + modifier vs DC).",
    SavingThrowArgs,
)
def _resolve_saving_throw(store: StateStore, args: SavingThrowArgs, rng: random.Random | None) -> BaseModel:
    return resolve_saving_throw(
        dc=args.dc,
        modifier=args.modifier,
        advantage=args.advantage,
        disadvantage=args.disadvantage,
        save_name=args.save_name,
        rng=rng,
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def get_tool(name: str) -> ToolSpec:
    """Look up a registered tool.

    Raises:
        UnknownTool: If no tool has that name.
    """
    spec = TOOLS.get(name)
    if spec is None:
        raise UnknownTool(name)
    return spec


def list_tools() -> list[dict[str, Any]]:
    """Name, description and argument schema of every registered tool."""
    return [spec.schema() for spec in TOOLS.values()]


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "arguments"
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


def _to_json(outcome: BaseModel) -> Any:
    if isinstance(outcome, StateResult):
        return outcome.to_json()
    return outcome.model_dump(mode="json")


def execute_tool(
    store: StateStore,
    call: ToolCall,
    rng: random.Random | None = None,
) -> ToolResult:
    """Run a single tool call against a session's store.

    Args:
        store: The session's State Store.
        call: The tool call to run.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        ToolResult carrying either the JSON result or an error message.
    """
    try:
        spec = get_tool(call.tool)
    except UnknownTool as exc:
        logger.warning("%s", exc)
        return ToolResult(tool=call.tool, args=call.args, error=str(exc))

    try:
        args = spec.args_model.model_validate(call.args)
        outcome = spec.handler(store, args, rng)
    except ValidationError as exc:
        message = f"Invalid arguments for {call.tool}: {_describe_validation_error(exc)}"
        logger.warning("%s", message)
        return ToolResult(tool=call.tool, args=call.args, error=message)
    except ValueError as exc:
        logger.warning("Tool %s rejected its input: %s", call.tool, exc)
        return ToolResult(tool=call.tool, args=call.args, error=str(exc))
    except Exception as exc:
        logger.exception("Tool %s failed", call.tool)
        return ToolResult(tool=call.tool, args=call.args, error=f"{type(exc).__name__}: {exc}")

    logger.debug("Tool %s succeeded", call.tool)
    return ToolResult(tool=call.tool, args=call.args, result=_to_json(outcome))


def execute_tool_calls(
    store: StateStore,
    calls: list[ToolCall],
    rng: random.Random | None = None,
) -> list[ToolResult]:
    """Run a batch of tool calls in order; one failure never stops the rest."""
    return [execute_tool(store, call, rng) for call in calls]


def process_response(
    store: StateStore,
    text: str,
    rng: random.Random | None = None,
) -> TurnOutcome:
    """Handle one model response: parse its tool calls, run them, clean the prose."""
    calls = parse_tool_calls(text)
    results = execute_tool_calls(store, calls, rng)
    failed = sum(1 for result in results if not result.ok)
    if failed:
        logger.info("%d of %d tool calls failed", failed, len(results))

    return TurnOutcome(
        narrative=extract_narrative(text),
        tool_calls=calls,
        results=results,
    )
