"""Lenient JSON loading for tool-call arguments written by a language model.

Strict ``json.loads`` is always tried first. Only when it fails is the text
run through ``REPAIR_PASSES``, an ordered list of small rewrites that each fix
one habit models have (bare keys, single quotes, trailing commas, ...). Apart
from fence stripping, every pass leaves the inside of string literals alone.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable

from engine.errors import ParseError

STRING_LITERAL = re.compile(r""""(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'""", re.DOTALL)
CODE_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*")
CODE_FENCE_CLOSE = re.compile(r"```$")
BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*):")
TRAILING_COMMA = re.compile(r",(\s*[}\]])")
PLUS_NUMBER = re.compile(r"([:\[,]\s*)\+(?=\.?\d)")
UNDEFINED_OR_NAN = re.compile(r"\b(?:undefined|NaN)\b")


def _outside_strings(text: str, rewrite: Callable[[str], str]) -> str:
    """Apply ``rewrite`` to every stretch of ``text`` between string literals."""
    parts = []
    last = 0
    for match in STRING_LITERAL.finditer(text):
        parts.append(rewrite(text[last:match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(rewrite(text[last:]))
    return "".join(parts)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```)."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = CODE_FENCE_OPEN.sub("", stripped, count=1)
        stripped = CODE_FENCE_CLOSE.sub("", stripped)
    return stripped.strip()


def quote_bare_keys(text: str) -> str:
    """{notation: "1d20"} -> {"notation": "1d20"}"""
    return _outside_strings(text, lambda chunk: BARE_KEY.sub(r'\1"\2"\3:', chunk))


def convert_single_quotes(text: str) -> str:
    """{'a': 'b'} -> {"a": "b"}; double-quoted strings are kept as they are."""
    def _convert(match: re.Match) -> str:
        literal = match.group(0)
        if literal.startswith('"'):
            return literal
        inner = literal[1:-1].replace("\\'", "'")
        inner = re.sub(r'(?<!\\)"', r'\\"', inner)
        return f'"{inner}"'

    return STRING_LITERAL.sub(_convert, text)


def drop_trailing_commas(text: str) -> str:
    """[1, 2,] -> [1, 2]"""
    return _outside_strings(text, lambda chunk: TRAILING_COMMA.sub(r"\1", chunk))


def strip_plus_signs(text: str) -> str:
    """{"attackBonus": +5} -> {"attackBonus": 5}"""
    return _outside_strings(text, lambda chunk: PLUS_NUMBER.sub(r"\1", chunk))


def replace_undefined_and_nan(text: str) -> str:
    """undefined / NaN -> null"""
    return _outside_strings(text, lambda chunk: UNDEFINED_OR_NAN.sub("null", chunk))


REPAIR_PASSES: tuple[Callable[[str], str], ...] = (
    strip_code_fences,
    quote_bare_keys,
    convert_single_quotes,
    drop_trailing_commas,
    strip_plus_signs,
    replace_undefined_and_nan,
)


def repair_json(text: str) -> str:
    """Run every repair pass over ``text`` in order."""
    for repair in REPAIR_PASSES:
        text = repair(text)
    return text


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def strict_loads(text: str) -> Any:
    """json.loads that also refuses NaN / Infinity."""
    return json.loads(text, parse_constant=_reject_constant)


def loads_lenient(text: str) -> Any:
    """Parse JSON, falling back to the repair pipeline on failure.

    Raises:
        ParseError: If the text is still not valid JSON after repair.
    """
    try:
        return strict_loads(text.strip())
    except RecursionError as exc:
        raise ParseError("JSON nested too deeply") from exc
    except ValueError:
        pass

    repaired = repair_json(text)
    try:
        return strict_loads(repaired)
    except RecursionError as exc:
        raise ParseError("JSON nested too deeply") from exc
    except ValueError as exc:
        raise ParseError(f"Malformed JSON after repair: {exc}") from exc
