"""Tests for TOOL_CALL / ARGUMENTS parsing and narrative extraction."""

import logging

import pytest

from engine.errors import ParseError
from engine.tool_parser import (
    extract_narrative,
    has_tool_calls,
    parse_arguments,
    parse_tool_calls,
    split_response,
)
from models.actions import ToolCall


class TestParseToolCalls:
    """Tests for parse_tool_calls()."""

    def test_single_call(self):
        text = (
            "The goblin lunges at you!\n"
            "TOOL_CALL: resolve_attack\n"
            'ARGUMENTS: {"targetAC": 15, "damageDice": "1d6+2", "attackBonus": 4}\n'
            "Steel flashes in the torchlight."
        )
        calls = parse_tool_calls(text)
        assert calls == [
            ToolCall(tool="resolve_attack", args={"targetAC": 15, "damageDice": "1d6+2", "attackBonus": 4})
        ]

    def test_single_quoted_arguments_recovered(self):
        calls = parse_tool_calls("TOOL_CALL: roll_dice\nARGUMENTS: {notation: '1d20', context: 'test'}")
        assert calls == [ToolCall(tool="roll_dice", args={"notation": "1d20", "context": "test"})]

    def test_multiple_calls_in_order(self):
        text = (
            "TOOL_CALL: roll_initiative\n"
            'ARGUMENTS: {"dexModifier": 2}\n'
            "Meanwhile the orc...\n"
            "TOOL_CALL: roll_dice\n"
            'ARGUMENTS: {"notation": "1d20"}\n'
        )
        assert [call.tool for call in parse_tool_calls(text)] == ["roll_initiative", "roll_dice"]

    def test_multi_line_arguments(self):
        text = (
            "TOOL_CALL: update_state\n"
            "ARGUMENTS: {\n"
            '  "key": "player",\n'
            '  "updates": {"hp": {"current": 12}}\n'
            "}\n"
            "You feel the wound."
        )
        calls = parse_tool_calls(text)
        assert calls == [
            ToolCall(tool="update_state", args={"key": "player", "updates": {"hp": {"current": 12}}})
        ]

    def test_blank_lines_before_arguments_skipped(self):
        text = "TOOL_CALL: roll_dice\n\n   \nARGUMENTS: {\"notation\": \"2d6\"}"
        assert parse_tool_calls(text) == [ToolCall(tool="roll_dice", args={"notation": "2d6"})]

    def test_indented_markers(self):
        text = "   TOOL_CALL: roll_dice\n\tARGUMENTS: {\"notation\": \"1d4\"}"
        assert parse_tool_calls(text) == [ToolCall(tool="roll_dice", args={"notation": "1d4"})]

    def test_missing_arguments_dropped(self, caplog):
        text = "TOOL_CALL: roll_dice\nThe dice clatter.\n"
        with caplog.at_level(logging.WARNING, logger="aidm.parser"):
            assert parse_tool_calls(text) == []
        assert "no ARGUMENTS line" in caplog.text

    def test_missing_arguments_line_rescanned(self):
        """A TOOL_CALL right after an incomplete one still parses."""
        text = (
            "TOOL_CALL: roll_dice\n"
            "TOOL_CALL: roll_initiative\n"
            'ARGUMENTS: {"dexModifier": 1}'
        )
        assert parse_tool_calls(text) == [ToolCall(tool="roll_initiative", args={"dexModifier": 1})]

    def test_output_ends_before_arguments(self, caplog):
        with caplog.at_level(logging.WARNING, logger="aidm.parser"):
            assert parse_tool_calls("Roll for it!\nTOOL_CALL: roll_dice") == []
        assert "ended before ARGUMENTS" in caplog.text

    def test_interrupted_arguments_dropped(self):
        text = (
            "TOOL_CALL: save_state\n"
            'ARGUMENTS: {"key": "flags",\n'
            "TOOL_CALL: roll_dice\n"
            'ARGUMENTS: {"notation": "1d8"}'
        )
        assert parse_tool_calls(text) == [ToolCall(tool="roll_dice", args={"notation": "1d8"})]

    def test_invalid_json_dropped(self, caplog):
        text = (
            "TOOL_CALL: roll_dice\n"
            "ARGUMENTS: {notation: 1d20 please\n"
            "}\n"
            "TOOL_CALL: roll_dice\n"
            'ARGUMENTS: {"notation": "1d6"}'
        )
        with caplog.at_level(logging.ERROR, logger="aidm.parser"):
            calls = parse_tool_calls(text)
        assert calls == [ToolCall(tool="roll_dice", args={"notation": "1d6"})]
        assert "Failed to parse arguments" in caplog.text

    def test_deeply_nested_arguments_dropped(self):
        """A body too deep to decode is dropped; its sibling call survives."""
        depth = 100_000
        text = (
            "TOOL_CALL: roll_dice\n"
            'ARGUMENTS: {"notation": "1d20"}\n'
            "TOOL_CALL: save_state\n"
            "ARGUMENTS: " + '{"a":' * depth + "1" + "}" * depth
        )
        assert parse_tool_calls(text) == [ToolCall(tool="roll_dice", args={"notation": "1d20"})]

    def test_non_object_arguments_dropped(self):
        assert parse_tool_calls('TOOL_CALL: roll_dice\nARGUMENTS: ["1d20"]') == []

    def test_empty_tool_name_dropped(self):
        assert parse_tool_calls('TOOL_CALL:\nARGUMENTS: {"notation": "1d20"}') == []

    def test_no_calls(self):
        assert parse_tool_calls("You enter a quiet tavern.") == []


class TestParseArguments:
    """Tests for parse_arguments()."""

    def test_object(self):
        assert parse_arguments('{"dc": 12}') == {"dc": 12}

    def test_code_fenced(self):
        assert parse_arguments('```json\n{"dc": 12}\n```') == {"dc": 12}

    def test_non_object_rejected(self):
        with pytest.raises(ParseError, match="must be a JSON object"):
            parse_arguments("42")


class TestHasToolCalls:

    def test_detects_marker(self):
        assert has_tool_calls('Hmm.\nTOOL_CALL: roll_dice\nARGUMENTS: {"notation": "1d20"}')

    def test_plain_prose(self):
        assert not has_tool_calls("The bard plays a tune.")


class TestExtractNarrative:
    """Tests for extract_narrative()."""

    def test_removes_tool_lines(self):
        text = (
            "The goblin swings!\n"
            "TOOL_CALL: resolve_attack\n"
            'ARGUMENTS: {"targetAC": 15, "damageDice": "1d6"}\n'
            "You brace yourself."
        )
        assert extract_narrative(text) == "The goblin swings!\nYou brace yourself."

    def test_collapses_blank_line_runs(self):
        text = "First.\n\n\n\nTOOL_CALL: roll_dice\nARGUMENTS: {}\n\n\n\nSecond."
        assert extract_narrative(text) == "First.\n\nSecond."

    def test_strips_outer_whitespace(self):
        assert extract_narrative("\n\n  Dawn breaks.  \n\n") == "Dawn breaks."

    def test_only_tool_lines(self):
        assert extract_narrative('TOOL_CALL: get_all_state\nARGUMENTS: {}') == ""

    def test_continuation_lines_kept(self):
        """Only marker lines are removed; a multi-line body's tail stays."""
        text = 'TOOL_CALL: save_state\nARGUMENTS: {\n"key": "flags"\n}\nOnward.'
        assert extract_narrative(text) == '"key": "flags"\n}\nOnward.'


class TestSplitResponse:
    """Tests for split_response()."""

    def test_segments_in_order(self):
        text = (
            "The door creaks open.\n"
            "TOOL_CALL: roll_dice\n"
            "ARGUMENTS: {\n"
            '  "notation": "1d20",\n'
            '  "context": "perception"\n'
            "}\n"
            "You peer into the dark."
        )
        segments = split_response(text)
        assert [segment.type for segment in segments] == ["narrative", "tool", "narrative"]
        assert segments[0].content == "The door creaks open."
        assert segments[1].tool == "roll_dice"
        assert segments[1].args == {"notation": "1d20", "context": "perception"}
        assert segments[2].content == "You peer into the dark."

    def test_dropped_call_leaves_no_segment(self):
        segments = split_response('Wait.\nTOOL_CALL: roll_dice\nARGUMENTS: [1, 2]\nDone.')
        assert [(s.type, s.content) for s in segments] == [("narrative", "Wait.\nDone.")]

    def test_plain_prose(self):
        segments = split_response("Just talking.")
        assert len(segments) == 1
        assert segments[0].type == "narrative"
