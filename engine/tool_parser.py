"""Extract TOOL_CALL / ARGUMENTS blocks from model output and clean the narrative.

Expected format, anywhere inside otherwise free-form prose:

    TOOL_CALL: roll_dice
    ARGUMENTS: {"notation": "1d20+3", "context": "attack roll"}

The argument body may span several lines; it is read until its brackets
balance. Anything that cannot be parsed with confidence is dropped and
logged: a skipped call is safer than a misread one.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Iterator, NamedTuple

from engine.errors import ParseError
from engine.json_repair import loads_lenient
from models.actions import ResponseSegment, ToolCall

logger = logging.getLogger("aidm.parser")

TOOL_CALL_PREFIX = "TOOL_CALL:"
ARGUMENTS_PREFIX = "ARGUMENTS:"
BLANK_LINE_RUN = re.compile(r"\n\s*\n\s*\n")


class ParserState(str, Enum):
    """States of the line scanner."""
    SCANNING = "scanning"           # Reading prose, looking for TOOL_CALL:
    EXPECT_ARGS = "expect_args"     # Saw TOOL_CALL:, next non-blank line must be ARGUMENTS:


class _ScanEvent(NamedTuple):
    kind: str                       # "narrative" or "block"
    text: str                       # Narrative line, or the raw argument text
    tool: str = ""


def _bracket_balance(text: str) -> int:
    return (
        text.count("[") + text.count("{")
        - text.count("]") - text.count("}")
    )


def _is_tool_call_line(line: str) -> bool:
    return line.strip().startswith(TOOL_CALL_PREFIX)


def _scan(text: str) -> Iterator[_ScanEvent]:
    """Walk the lines of ``text``, yielding prose lines and complete tool blocks.

    Malformed blocks are logged and produce no event.
    """
    lines = text.split("\n")
    state = ParserState.SCANNING
    tool = ""
    index = 0

    while index < len(lines):
        line = lines[index]
        stripped = line.strip()

        if state is ParserState.SCANNING:
            if stripped.startswith(TOOL_CALL_PREFIX):
                tool = stripped[len(TOOL_CALL_PREFIX):].strip()
                state = ParserState.EXPECT_ARGS
            else:
                yield _ScanEvent("narrative", line)
            index += 1
            continue

        if not stripped:
            index += 1
            continue

        state = ParserState.SCANNING
        if not stripped.startswith(ARGUMENTS_PREFIX):
            logger.warning("Dropping tool call %r: no ARGUMENTS line follows it", tool)
            # Re-scan this line; it may itself start a new call
            continue

        raw = stripped[len(ARGUMENTS_PREFIX):].strip()
        balance = _bracket_balance(raw)
        index += 1
        interrupted = False
        while balance > 0 and index < len(lines):
            if _is_tool_call_line(lines[index]):
                interrupted = True
                break
            raw += "\n" + lines[index]
            balance += _bracket_balance(lines[index])
            index += 1

        if interrupted:
            logger.warning("Dropping tool call %r: arguments interrupted by another TOOL_CALL", tool)
            continue
        if not tool:
            logger.warning("Dropping tool call with no tool name")
            continue
        yield _ScanEvent("block", raw, tool)

    if state is ParserState.EXPECT_ARGS:
        logger.warning("Dropping tool call %r: output ended before ARGUMENTS", tool)


def parse_arguments(raw: str) -> dict[str, Any]:
    """Parse a tool-call argument body into a JSON object.

    Raises:
        ParseError: If the body is not a JSON object even after repair.
    """
    value = loads_lenient(raw)
    if not isinstance(value, dict):
        raise ParseError(f"Tool arguments must be a JSON object, got {type(value).__name__}")
    return value


def _parse_block(event: _ScanEvent) -> ToolCall | None:
    try:
        args = parse_arguments(event.text)
    except ParseError as exc:
        logger.error("Failed to parse arguments for tool %r: %s", event.tool, exc)
        return None
    return ToolCall(tool=event.tool, args=args)


def parse_tool_calls(text: str) -> list[ToolCall]:
    """Parse model output for tool calls.

    Args:
        text: Raw model response.

    Returns:
        The successfully parsed calls, in source order.
    """
    calls = []
    for event in _scan(text):
        if event.kind != "block":
            continue
        call = _parse_block(event)
        if call is not None:
            calls.append(call)
    return calls


def has_tool_calls(text: str) -> bool:
    """Whether the text contains any TOOL_CALL marker."""
    return TOOL_CALL_PREFIX in text


def extract_narrative(text: str) -> str:
    """Strip tool-call syntax, leaving the prose shown to the player.

    Every line starting with TOOL_CALL: or ARGUMENTS: is removed and runs of
    blank lines collapse to a single blank line.
    """
    kept = [
        line for line in text.split("\n")
        if not line.strip().startswith((TOOL_CALL_PREFIX, ARGUMENTS_PREFIX))
    ]
    narrative = "\n".join(kept).strip()
    return BLANK_LINE_RUN.sub("\n\n", narrative)


def split_response(text: str) -> list[ResponseSegment]:
    """Split a response into ordered narrative and tool segments.

    Unlike ``extract_narrative`` this follows multi-line argument bodies, so
    JSON continuation lines never show up as narrative.
    """
    segments: list[ResponseSegment] = []
    pending: list[str] = []

    def flush() -> None:
        content = "\n".join(pending).strip()
        if content:
            segments.append(ResponseSegment(type="narrative", content=content))
        pending.clear()

    for event in _scan(text):
        if event.kind == "narrative":
            pending.append(event.text)
            continue
        call = _parse_block(event)
        if call is None:
            continue
        flush()
        segments.append(ResponseSegment(type="tool", tool=call.tool, args=call.args))

    flush()
    return segments
