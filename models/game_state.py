"""Reserved keys of the in-memory game state and their empty defaults."""

from typing import Any

RESERVED_KEYS = ("player", "npcs", "flags", "quest_log", "combat_state")


def default_state() -> dict[str, Any]:
    """A fresh game state: no player, empty NPC/flag maps, empty quest log."""
    return {
        "player": None,             # Set by initialize_player / save_state
        "npcs": {},                 # npc_id -> arbitrary NPC record
        "flags": {},                # Story flags
        "quest_log": [],
        "combat_state": None,
    }
