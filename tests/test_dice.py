"""Tests for dice rolling utilities."""

import random

import pytest

from engine.dice import (
    AdvantageRollResult,
    DiceNotation,
    RollResult,
    format_notation,
    parse_dice_notation,
    roll_d20,
    roll_dice,
    roll_die,
    roll_with_advantage,
    roll_with_disadvantage,
)
from engine.errors import InvalidNotation, ParseError


class _ScriptedRandom(random.Random):
    """Random whose randint returns queued values in order."""

    def __init__(self, *values: int) -> None:
        super().__init__(0)
        self._values = list(values)

    def randint(self, a: int, b: int) -> int:
        value = self._values.pop(0)
        assert a <= value <= b
        return value


class TestParseDiceNotation:
    """Tests for parse_dice_notation()."""

    def test_plain(self):
        assert parse_dice_notation("1d20") == DiceNotation(count=1, sides=20, modifier=0)

    def test_positive_modifier(self):
        assert parse_dice_notation("2d6+3") == DiceNotation(count=2, sides=6, modifier=3)

    def test_negative_modifier(self):
        assert parse_dice_notation("3d8-2") == DiceNotation(count=3, sides=8, modifier=-2)

    def test_uppercase_d_and_whitespace(self):
        assert parse_dice_notation("  4D6 ") == DiceNotation(count=4, sides=6, modifier=0)

    def test_invalid_notation(self):
        """Invalid notation raises InvalidNotation naming the string."""
        for bad in ("bad", "d6", "2d", "1d20+", "1d20 + 3", "2d6+1d4", ""):
            with pytest.raises(InvalidNotation, match="Invalid dice notation"):
                parse_dice_notation(bad)

    def test_non_ascii_digits_rejected(self):
        for bad in ("２d６", "1d２0", "1d20+３"):
            with pytest.raises(InvalidNotation):
                parse_dice_notation(bad)

    def test_zero_dice_or_sides_rejected(self):
        with pytest.raises(InvalidNotation):
            parse_dice_notation("0d6")
        with pytest.raises(InvalidNotation):
            parse_dice_notation("1d0")

    def test_invalid_notation_is_parse_error(self):
        with pytest.raises(ParseError):
            parse_dice_notation("fireball")
        with pytest.raises(ValueError):
            parse_dice_notation("fireball")

    def test_roundtrip_from_roll(self):
        """The notation carried by a roll parses back to the same fields."""
        for notation in ("1d20", "2d6+3", "4d8-1", "10d10"):
            parsed = parse_dice_notation(notation)
            rolled = roll_dice(notation, rng=random.Random(7))
            assert parse_dice_notation(rolled.notation) == parsed
            assert parse_dice_notation(format_notation(parsed)) == parsed


class TestRollDie:
    """Tests for roll_die()."""

    def test_in_range(self):
        rng = random.Random(42)
        for _ in range(200):
            assert 1 <= roll_die(6, rng) <= 6

    def test_zero_sides_rejected(self):
        with pytest.raises(ValueError):
            roll_die(0)


class TestRollDice:
    """Tests for the roll_dice() function."""

    def test_basic_roll(self):
        """Roll 1d6 with a seeded RNG produces expected result."""
        rng = random.Random(42)
        result = roll_dice("1d6", rng=rng)
        assert isinstance(result, RollResult)
        assert len(result.raw_rolls) == 1
        assert 1 <= result.raw_rolls[0] <= 6
        assert result.modifier == 0
        assert result.result == result.raw_rolls[0]

    def test_multiple_dice(self):
        """Roll 3d6 produces 3 individual rolls."""
        rng = random.Random(42)
        result = roll_dice("3d6", rng=rng)
        assert len(result.raw_rolls) == 3
        assert all(1 <= r <= 6 for r in result.raw_rolls)
        assert result.result == sum(result.raw_rolls)
        assert result.subtotal == sum(result.raw_rolls)

    def test_positive_modifier(self):
        rng = random.Random(42)
        result = roll_dice("1d8+3", rng=rng)
        assert result.modifier == 3
        assert result.result == result.raw_rolls[0] + 3

    def test_negative_modifier(self):
        rng = random.Random(42)
        result = roll_dice("1d8-2", rng=rng)
        assert result.modifier == -2
        assert result.result == result.raw_rolls[0] - 2

    def test_result_bounds(self):
        """Every roll of NdS+M lies in [N+M, N*S+M]."""
        rng = random.Random(99)
        for notation, count, sides, modifier in [
            ("1d20", 1, 20, 0),
            ("2d6+3", 2, 6, 3),
            ("4d4-2", 4, 4, -2),
            ("20d6", 20, 6, 0),
        ]:
            for _ in range(50):
                result = roll_dice(notation, rng=rng)
                assert len(result.raw_rolls) == count
                assert all(1 <= r <= sides for r in result.raw_rolls)
                assert count + modifier <= result.result <= count * sides + modifier

    def test_notation_and_context_stored(self):
        result = roll_dice("2d6+3", "damage")
        assert result.notation == "2d6+3"
        assert result.context == "damage"

    def test_breakdown_lists_rolls(self):
        result = roll_dice("2d6+3", rng=_ScriptedRandom(4, 2))
        assert result.breakdown == "2d6 (4, 2) +3"
        assert result.result == 9

    def test_breakdown_negative_modifier(self):
        result = roll_dice("1d8-1", rng=_ScriptedRandom(5))
        assert result.breakdown == "1d8 (5) -1"

    def test_breakdown_without_modifier(self):
        result = roll_dice("1d20", rng=_ScriptedRandom(17))
        assert result.breakdown == "1d20 (17)"

    def test_breakdown_omits_rolls_above_ten_dice(self):
        result = roll_dice("11d6+2", rng=random.Random(1))
        assert result.breakdown == "11d6 +2"
        assert len(result.raw_rolls) == 11

    def test_breakdown_keeps_rolls_at_ten_dice(self):
        result = roll_dice("10d4", rng=random.Random(1))
        assert "(" in result.breakdown

    def test_invalid_notation(self):
        with pytest.raises(InvalidNotation):
            roll_dice("bad")

    def test_seeded_determinism(self):
        """Same seed produces same results."""
        result1 = roll_dice("4d6", rng=random.Random(123))
        result2 = roll_dice("4d6", rng=random.Random(123))
        assert result1.raw_rolls == result2.raw_rolls
        assert result1.result == result2.result


class TestAdvantage:
    """Tests for roll_with_advantage() / roll_with_disadvantage()."""

    def test_advantage_takes_higher(self):
        result = roll_with_advantage("1d20", "stealth", rng=_ScriptedRandom(7, 15))
        assert isinstance(result, AdvantageRollResult)
        assert result.result == 15
        assert result.chosen_result == 15
        assert result.discarded_result == 7
        assert result.mode == "advantage"
        assert [r.result for r in result.rolls] == [7, 15]
        assert result.breakdown == "1d20 (15) [ADV: chose 15 over 7]"

    def test_disadvantage_takes_lower(self):
        result = roll_with_disadvantage("1d20+2", rng=_ScriptedRandom(7, 15))
        assert result.result == 9
        assert result.raw_rolls == [7]
        assert result.breakdown == "1d20 (7) +2 [DIS: chose 9 over 17]"

    def test_tie_keeps_first_roll(self):
        result = roll_with_advantage("2d6", rng=_ScriptedRandom(1, 5, 3, 3))
        assert result.result == 6
        assert result.raw_rolls == [1, 5]
        result = roll_with_disadvantage("2d6", rng=_ScriptedRandom(1, 5, 3, 3))
        assert result.raw_rolls == [1, 5]

    def test_advantage_never_below_either_roll(self):
        rng = random.Random(5)
        for _ in range(100):
            adv = roll_with_advantage("1d20", rng=rng)
            assert adv.result >= max(r.result for r in adv.rolls)
            dis = roll_with_disadvantage("1d20", rng=rng)
            assert dis.result <= min(r.result for r in dis.rolls)

    def test_context_kept(self):
        result = roll_with_advantage("1d20", "perception", rng=random.Random(3))
        assert result.context == "perception"


class TestRollD20:
    """Tests for the roll_d20() function."""

    def test_straight_roll(self):
        rng = random.Random(42)
        result = roll_d20(rng=rng)
        assert 1 <= result.result <= 20

    def test_advantage_takes_higher(self):
        """Advantage takes the higher of two rolls."""
        rng = random.Random(42)
        check_rng = random.Random(42)
        r1 = check_rng.randint(1, 20)
        r2 = check_rng.randint(1, 20)

        result = roll_d20(advantage=True, rng=rng)
        assert result.result == max(r1, r2)

    def test_disadvantage_takes_lower(self):
        rng = random.Random(42)
        check_rng = random.Random(42)
        r1 = check_rng.randint(1, 20)
        r2 = check_rng.randint(1, 20)

        result = roll_d20(disadvantage=True, rng=rng)
        assert result.result == min(r1, r2)

    def test_advantage_and_disadvantage_cancel(self):
        """Advantage + disadvantage = straight roll."""
        rng = random.Random(42)
        check_rng = random.Random(42)
        expected = check_rng.randint(1, 20)

        result = roll_d20(advantage=True, disadvantage=True, rng=rng)
        assert result.result == expected
        assert not isinstance(result, AdvantageRollResult)
