"""
AI DM MCP Server
A language-model client connects to this via stdio and calls the game tools
directly instead of writing TOOL_CALL blocks into its narration.

Every tool goes through the same dispatcher as the text protocol and the HTTP
API, so results and error handling are identical. Each returns the ToolResult
as JSON text.

Run:
    python mcp_server.py
"""

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from config import DEFAULT_CRIT_RANGE, MCP_SERVER_NAME, configure_logging
from engine.state import StateStore
from engine.tools import execute_tool
from models.actions import ToolCall

logger = logging.getLogger("aidm.mcp")

server = FastMCP(MCP_SERVER_NAME)

# One game session per server process
store = StateStore()


def _run(tool: str, **args: Any) -> str:
    """Dispatch a tool call against the session store, returning JSON text."""
    result = execute_tool(store, ToolCall(tool=tool, args=args))
    return json.dumps(result.to_json(), indent=2)


# ─────────────────────────────────────────────────────
# DICE
# ─────────────────────────────────────────────────────

@server.tool()
def roll_dice(notation: str, context: str = "") -> str:
    """Roll dice using standard D&D notation (e.g. "2d6+3", "1d20")."""
    return _run("roll_dice", notation=notation, context=context)


@server.tool()
def roll_with_advantage(notation: str, context: str = "") -> str:
    """Roll dice twice and keep the higher result."""
    return _run("roll_with_advantage", notation=notation, context=context)


@server.tool()
def roll_with_disadvantage(notation: str, context: str = "") -> str:
    """Roll dice twice and keep the lower result."""
    return _run("roll_with_disadvantage", notation=notation, context=context)


# ─────────────────────────────────────────────────────
# STATE
# ─────────────────────────────────────────────────────

@server.tool()
def save_state(key: str, value: Any) -> str:
    """Save game state data (player, npcs, flags, ...) under a key."""
    return _run("save_state", key=key, value=value)


@server.tool()
def load_state(key: str) -> str:
    """Load game state data stored under a key."""
    return _run("load_state", key=key)


@server.tool()
def update_state(key: str, updates: dict[str, Any]) -> str:
    """
    Deep-merge partial changes into an existing key.
    Player inventory is additive: {"inventory": {"add": {"name": "Map", "quantity": 1}}}
    or {"inventory": {"remove": "Map", "quantity": 1}}.
    """
    return _run("update_state", key=key, updates=updates)


@server.tool()
def get_all_state() -> str:
    """Get all current game state data."""
    return _run("get_all_state")


@server.tool()
def reset_state() -> str:
    """Reset all game state (start a new game)."""
    return _run("reset_state")


@server.tool()
def initialize_player(
    name: str,
    character_class: str | None = None,
    level: int | None = None,
    max_hp: int | None = None,
    ac: int | None = None,
    stats: dict[str, int] | None = None,
    inventory: list[Any] | None = None,
    gold: int | None = None,
    location: str | None = None,
) -> str:
    """Initialize the player; anything not given gets the Fighter defaults."""
    return _run(
        "initialize_player",
        name=name,
        character_class=character_class,
        level=level,
        max_hp=max_hp,
        ac=ac,
        stats=stats,
        inventory=inventory,
        gold=gold,
        location=location,
    )


# ─────────────────────────────────────────────────────
# COMBAT
# ─────────────────────────────────────────────────────

@server.tool()
def resolve_attack(
    target_ac: int,
    damage_dice: str,
    attack_bonus: int = 0,
    damage_bonus: int = 0,
    advantage: bool = False,
    disadvantage: bool = False,
    crit_range: int = DEFAULT_CRIT_RANGE,
    context: str = "Attack",
) -> str:
    """Roll to hit against AC and roll damage on a hit. Handles crits and fumbles."""
    return _run(
        "resolve_attack",
        target_ac=target_ac,
        damage_dice=damage_dice,
        attack_bonus=attack_bonus,
        damage_bonus=damage_bonus,
        advantage=advantage,
        disadvantage=disadvantage,
        crit_range=crit_range,
        context=context,
    )


@server.tool()
def apply_damage(current_hp: int, max_hp: int, damage: int) -> str:
    """Apply damage, reporting new HP and whether the creature is dead or bloodied."""
    return _run("apply_damage", current_hp=current_hp, max_hp=max_hp, damage=damage)


@server.tool()
def apply_healing(current_hp: int, max_hp: int, healing: int) -> str:
    """Apply healing, never exceeding max HP."""
    return _run("apply_healing", current_hp=current_hp, max_hp=max_hp, healing=healing)


@server.tool()
def roll_initiative(dex_modifier: int = 0, advantage: bool = False) -> str:
    """Roll initiative (1d20 + DEX modifier)."""
    return _run("roll_initiative", dex_modifier=dex_modifier, advantage=advantage)


@server.tool()
def resolve_saving_throw(
    dc: int,
    modifier: int = 0,
    advantage: bool = False,
    disadvantage: bool = False,
    save_name: str = "Saving Throw",
) -> str:
    """Resolve a saving throw (1d20 + modifier vs DC)."""
    return _run(
        "resolve_saving_throw",
        dc=dc,
        modifier=modifier,
        advantage=advantage,
        disadvantage=disadvantage,
        save_name=save_name,
    )


if __name__ == "__main__":
    configure_logging()
    logger.info("Starting %s on stdio", MCP_SERVER_NAME)
    server.run(transport="stdio")
