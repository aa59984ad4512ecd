"""Game state inspection and correction endpoints."""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request

from engine.state import StateStore

router = APIRouter()


def _get_store(request: Request) -> StateStore:
    """Get the session's state store from app state."""
    return request.app.state.store


@router.get("")
def get_all_state(request: Request) -> dict[str, Any]:
    """Snapshot of the whole game state."""
    return _get_store(request).get_all().state


@router.get("/player")
def get_player(request: Request) -> dict[str, Any]:
    """The player record with derived ability modifiers."""
    summary = _get_store(request).player_summary()
    if summary is None:
        raise HTTPException(status_code=404, detail="No player has been initialized")
    return summary


@router.post("/reset")
def reset_state(request: Request) -> dict[str, Any]:
    """Start a new game."""
    return _get_store(request).reset().to_json()


@router.get("/{key}")
def load_key(key: str, request: Request) -> dict[str, Any]:
    """Load one state key."""
    result = _get_store(request).load(key)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.message)
    return result.to_json()


@router.put("/{key}")
def save_key(key: str, request: Request, value: Any = Body(...)) -> dict[str, Any]:
    """Overwrite (or create) one state key."""
    return _get_store(request).save(key, value).to_json()


@router.patch("/{key}")
def update_key(key: str, request: Request, updates: Any = Body(...)) -> dict[str, Any]:
    """Deep-merge a partial update into an existing key."""
    store = _get_store(request)
    result = store.update(key, updates)
    if not result.success:
        status_code = 404 if key not in store else 422
        raise HTTPException(status_code=status_code, detail=result.message)
    return result.to_json()
