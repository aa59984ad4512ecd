"""Tool listing, single tool execution, and whole-turn processing endpoints."""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request
from pydantic import BaseModel

from engine.errors import UnknownTool
from engine.state import StateStore
from engine.tool_parser import extract_narrative, has_tool_calls, parse_tool_calls, split_response
from engine.tools import execute_tool, get_tool, list_tools, process_response
from models.actions import ToolCall

router = APIRouter()


class ModelResponse(BaseModel):
    """Raw text produced by the language model for one turn."""
    text: str


def _get_store(request: Request) -> StateStore:
    """Get the session's state store from app state."""
    return request.app.state.store


@router.get("/tools")
def get_tools() -> list[dict[str, Any]]:
    """List every tool with its description and argument schema."""
    return list_tools()


@router.post("/tools/{tool_name}")
def call_tool(
    tool_name: str,
    request: Request,
    args: dict[str, Any] | None = Body(default=None),
) -> dict[str, Any]:
    """Run one tool.

    Argument and notation errors come back as a 200 with ``error`` set, the
    same shape a batch result would have. Only an unknown tool is a 404.
    """
    try:
        get_tool(tool_name)
    except UnknownTool as e:
        raise HTTPException(status_code=404, detail=str(e))

    result = execute_tool(_get_store(request), ToolCall(tool=tool_name, args=args or {}))
    return result.to_json()


@router.post("/turn")
def process_turn(body: ModelResponse, request: Request) -> dict[str, Any]:
    """Parse a model response, run its tool calls in order, and return the narrative."""
    outcome = process_response(_get_store(request), body.text)
    return outcome.to_json()


@router.post("/turn/parse")
def parse_turn(body: ModelResponse) -> dict[str, Any]:
    """Parse a model response without running anything."""
    return {
        "has_tool_calls": has_tool_calls(body.text),
        "tool_calls": [call.model_dump(mode="json") for call in parse_tool_calls(body.text)],
        "narrative": extract_narrative(body.text),
        "segments": [
            segment.model_dump(mode="json", exclude_none=True)
            for segment in split_response(body.text)
        ],
    }
