"""In-memory game state store: keyed values, deep-merge updates, inventory stacks.

One ``StateStore`` belongs to one game session. It holds plain JSON data only;
inventories are normalised to ``{"name", "quantity"}`` stacks the moment they
enter the store so the legacy bare-string form never leaks out.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from engine.rules import ability_modifiers
from models.characters import STARTER_INVENTORY, AbilityScores, ItemStack, Player
from models.game_state import default_state
from models.results import StateResult

logger = logging.getLogger("aidm.state")


def _positive_int(value: Any) -> int | None:
    """Return value if it is a positive integer (bools excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def normalize_item(item: Any) -> ItemStack | None:
    """Turn a bare item name or an item object into an ItemStack.

    Returns None for anything without a usable name. A missing or invalid
    quantity becomes 1.
    """
    if isinstance(item, str):
        name = item.strip()
        return ItemStack(name=name) if name else None

    if isinstance(item, dict):
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        return ItemStack(name=name.strip(), quantity=_positive_int(item.get("quantity")) or 1)

    return None


def normalize_inventory(items: Any) -> list[ItemStack]:
    """Normalise a stored inventory list, dropping unusable entries."""
    if not isinstance(items, list):
        return []
    stacks = []
    for item in items:
        stack = normalize_item(item)
        if stack is not None:
            stacks.append(stack)
    return stacks


def _find_stack(inventory: list[ItemStack], name: str) -> int | None:
    wanted = name.strip().casefold()
    for index, stack in enumerate(inventory):
        if stack.name.casefold() == wanted:
            return index
    return None


def _add_item(inventory: list[ItemStack], item: Any, quantity: Any = None) -> None:
    stack = normalize_item(item)
    if stack is None:
        logger.debug("Ignoring unusable inventory item %r", item)
        return

    amount = _positive_int(quantity) or stack.quantity
    index = _find_stack(inventory, stack.name)
    if index is None:
        inventory.append(ItemStack(name=stack.name, quantity=amount))
    else:
        inventory[index].quantity += amount


def _remove_item(inventory: list[ItemStack], item: Any, quantity: Any = None) -> None:
    if isinstance(item, dict):
        name = item.get("name")
        amount = _positive_int(quantity) or _positive_int(item.get("quantity")) or 1
    else:
        name = item
        amount = _positive_int(quantity) or 1

    if not isinstance(name, str) or not name.strip():
        logger.debug("Ignoring inventory removal without a name: %r", item)
        return

    index = _find_stack(inventory, name)
    if index is None:
        return
    remaining = inventory[index].quantity - amount
    if remaining > 0:
        inventory[index].quantity = remaining
    else:
        del inventory[index]


def merge_inventory(current: Any, patch: Any) -> list[dict[str, Any]]:
    """Apply an inventory patch additively.

    Accepted patch shapes:
        ["Map", {"name": "Rope", "quantity": 2}]   add each entry
        "Map"                                      add one
        {"add": item, "quantity": n}               add n (default: the item's own quantity, else 1)
        {"remove": name, "quantity": n}            remove n (default 1), dropping empty stacks

    Anything else leaves the inventory untouched.

    Args:
        current: The inventory currently stored (stacks or legacy strings).
        patch: The incoming inventory update.

    Returns:
        The merged inventory as a list of ``{"name", "quantity"}`` dicts.
    """
    inventory = normalize_inventory(current)

    if isinstance(patch, list):
        for entry in patch:
            _add_item(inventory, entry)
    elif isinstance(patch, str):
        _add_item(inventory, patch)
    elif isinstance(patch, dict) and "add" in patch:
        _add_item(inventory, patch["add"], patch.get("quantity"))
    elif isinstance(patch, dict) and "remove" in patch:
        _remove_item(inventory, patch["remove"], patch.get("quantity"))
    else:
        logger.debug("Ignoring unrecognised inventory patch %r", patch)

    return [stack.model_dump() for stack in inventory]


def deep_merge(current: Any, updates: Any) -> Any:
    """Recursively merge ``updates`` into ``current``.

    Mappings merge field by field; any other incoming value (lists included)
    replaces the existing one outright. A missing base counts as an empty
    mapping. Neither argument is mutated.
    """
    if not isinstance(updates, dict):
        return copy.deepcopy(updates)
    if current is None:
        current = {}
    if not isinstance(current, dict):
        return copy.deepcopy(updates)

    merged = dict(current)
    for field, incoming in updates.items():
        existing = merged.get(field)
        if isinstance(existing, dict) and isinstance(incoming, dict):
            merged[field] = deep_merge(existing, incoming)
        else:
            merged[field] = copy.deepcopy(incoming)
    return merged


def _normalize_player_record(value: Any) -> Any:
    """Normalise the inventory of a player record in place of legacy strings."""
    if isinstance(value, dict) and isinstance(value.get("inventory"), list):
        value = dict(value)
        value["inventory"] = [s.model_dump() for s in normalize_inventory(value["inventory"])]
    return value


def build_player(player_data: dict[str, Any]) -> Player:
    """Build a full player record from partial input, filling every default.

    Falsy inputs fall back to the default, matching how character sheets are
    usually filled in (an empty name or a level of 0 means "not given").

    Raises:
        pydantic.ValidationError: If a provided field has the wrong type.
    """
    stats_in = player_data.get("stats")
    if not isinstance(stats_in, dict):
        stats_in = {}
    base_stats = AbilityScores()
    stats = {
        name: stats_in.get(name) or default
        for name, default in base_stats.model_dump().items()
    }
    max_hp = player_data.get("maxHp") or player_data.get("max_hp") or 30
    inventory = player_data.get("inventory") or STARTER_INVENTORY

    return Player(
        name=player_data.get("name") or "Adventurer",
        character_class=player_data.get("class") or player_data.get("character_class") or "Fighter",
        level=player_data.get("level") or 1,
        hp={"current": max_hp, "max": max_hp},
        ac=player_data.get("ac") or 15,
        stats=stats,
        inventory=normalize_inventory(inventory),
        resources={"gold": player_data.get("gold") or 10},
        location=player_data.get("location") or "start",
    )


class StateStore:
    """Per-session key/value game state.

    Not thread-safe: one caller drives a session one turn at a time.
    """

    def __init__(self) -> None:
        self._state: dict[str, Any] = default_state()

    def __contains__(self, key: str) -> bool:
        return key in self._state

    def save(self, key: str, value: Any) -> StateResult:
        """Store ``value`` under ``key``, creating or overwriting it."""
        value = copy.deepcopy(value)
        if key == "player":
            value = _normalize_player_record(value)
        self._state[key] = value
        logger.debug("Saved state key %r", key)
        return StateResult(success=True, key=key, message=f"State saved to '{key}'")

    def load(self, key: str) -> StateResult:
        """Read a key. A key that was never set is reported, not raised."""
        if key not in self._state:
            return StateResult(
                success=False,
                message=f"Key '{key}' not found in state",
                value=None,
            )
        return StateResult(success=True, key=key, value=copy.deepcopy(self._state[key]))

    def update(self, key: str, updates: Any) -> StateResult:
        """Deep-merge ``updates`` into an existing key.

        For ``player``, the ``inventory`` field is merged additively (see
        ``merge_inventory``) instead of being replaced.
        """
        if key not in self._state:
            return StateResult(
                success=False,
                key=key,
                message=f"Key '{key}' not found in state. Use save_state to create it first.",
            )
        if not isinstance(updates, dict):
            logger.warning("Rejected update to %r: updates is %s, not an object", key, type(updates).__name__)
            return StateResult(
                success=False,
                key=key,
                message="updates must be an object. Use save_state to replace a value outright.",
            )

        current = self._state[key]
        if key == "player" and "inventory" in updates:
            base = dict(current) if isinstance(current, dict) else {}
            base["inventory"] = merge_inventory(base.get("inventory") or [], updates["inventory"])
            rest = {field: value for field, value in updates.items() if field != "inventory"}
            merged = deep_merge(base, rest)
        else:
            merged = deep_merge(current, updates)

        if key == "player":
            merged = _normalize_player_record(merged)
        self._state[key] = merged
        logger.debug("Updated state key %r", key)

        return StateResult(
            success=True,
            key=key,
            value=copy.deepcopy(merged),
            message=f"State '{key}' updated",
        )

    def get_all(self) -> StateResult:
        """Snapshot of the whole store; safe for the caller to mutate."""
        return StateResult(success=True, state=copy.deepcopy(self._state))

    def reset(self) -> StateResult:
        """Start a new game: reserved keys back to defaults, other keys dropped."""
        self._state = default_state()
        logger.info("Game state reset")
        return StateResult(success=True, message="All state reset")

    def initialize_player(self, player_data: dict[str, Any]) -> StateResult:
        """Build a player from partial data and store it under ``player``."""
        player = build_player(player_data).to_json()
        self._state["player"] = player
        logger.info("Initialized player %r", player["name"])
        return StateResult(
            success=True,
            player=copy.deepcopy(player),
            message=f"Player '{player['name']}' initialized",
        )

    def player_summary(self) -> dict[str, Any] | None:
        """The stored player plus derived ability modifiers, or None."""
        player = self._state.get("player")
        if not isinstance(player, dict):
            return None
        summary = copy.deepcopy(player)
        stats = player.get("stats") if isinstance(player.get("stats"), dict) else {}
        summary["modifiers"] = ability_modifiers(stats)
        return summary
