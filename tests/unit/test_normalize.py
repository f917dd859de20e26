"""Unit tests for tournament_etl.normalize."""

import pytest

from tournament_etl.normalize import (
    is_placeholder_team,
    normalize_date,
    normalize_score,
    slug_name,
    text,
    trim,
)


# ---------------------------------------------------------------------------
# text / trim
# ---------------------------------------------------------------------------

class TestText:
    def test_strips_whitespace(self):
        assert text("  Lions  ") == "Lions"

    def test_none_is_empty(self):
        assert text(None) == ""

    def test_numbers_are_stringified(self):
        assert text(3) == "3"


class TestTrim:
    def test_empty_string_returns_none(self):
        assert trim("") is None

    def test_whitespace_only_returns_none(self):
        assert trim("   ") is None

    def test_keeps_value(self):
        assert trim(" U13B ") == "U13B"


# ---------------------------------------------------------------------------
# slug_name
# ---------------------------------------------------------------------------

class TestSlugName:
    def test_kebab_case(self):
        assert slug_name("Winner QF1") == "winner-qf1"

    def test_folds_accents(self):
        assert slug_name("Café Olé") == "cafe-ole"

    def test_collapses_punctuation(self):
        assert slug_name("  St. Mary's -- U13  ") == "st-mary-s-u13"

    def test_punctuation_only_returns_none(self):
        assert slug_name("---") is None


# ---------------------------------------------------------------------------
# normalize_date
# ---------------------------------------------------------------------------

class TestNormalizeDate:
    def test_iso_passthrough(self):
        assert normalize_date("2025-06-01") == "2025-06-01"

    def test_blank_is_empty(self):
        assert normalize_date("") == ""
        assert normalize_date(None) == ""

    def test_long_form(self):
        assert normalize_date("Saturday 7 June 2025") == "2025-06-07"

    def test_strips_trailing_annotation(self):
        assert normalize_date("7 June 2025 - Day 2") == "2025-06-07"

    def test_strips_leading_ordinal(self):
        assert normalize_date("1st June 2025") == "2025-06-01"

    def test_month_first(self):
        assert normalize_date("June 3, 2025") == "2025-06-03"

    @pytest.mark.parametrize("raw", ["not-a-date", "TBC", "banana split"])
    def test_unparseable_is_empty(self, raw):
        assert normalize_date(raw) == ""

    @pytest.mark.parametrize("raw", ["Saturday", "10:00", "June", "7 June", "June 2025"])
    def test_partial_date_is_empty(self, raw):
        assert normalize_date(raw) == ""

    @pytest.mark.parametrize("raw", ["2025-13-45", "2025-02-30", "2025-00-10"])
    def test_invalid_iso_date_is_empty(self, raw):
        assert normalize_date(raw) == ""


# ---------------------------------------------------------------------------
# normalize_score
# ---------------------------------------------------------------------------

class TestNormalizeScore:
    def test_integer_string(self):
        assert normalize_score("2") == 2
        assert isinstance(normalize_score("2"), int)

    def test_integral_float_becomes_int(self):
        assert normalize_score("3.0") == 3
        assert isinstance(normalize_score("3.0"), int)

    def test_fractional(self):
        assert normalize_score("1.5") == 1.5

    def test_zero_is_a_score(self):
        assert normalize_score("0") == 0

    def test_numeric_input(self):
        assert normalize_score(4) == 4

    def test_blank_is_empty(self):
        assert normalize_score("") == ""
        assert normalize_score("  ") == ""
        assert normalize_score(None) == ""

    def test_non_numeric_is_empty(self):
        assert normalize_score("W/O") == ""

    def test_non_finite_is_empty(self):
        assert normalize_score("inf") == ""
        assert normalize_score("nan") == ""


# ---------------------------------------------------------------------------
# is_placeholder_team
# ---------------------------------------------------------------------------

class TestIsPlaceholderTeam:
    @pytest.mark.parametrize(
        "name",
        ["3rd Place", "1st place", "Winner QF1", "Loser SF2", "B2", "a1", "Pool A Runner Up"],
    )
    def test_placeholders(self, name):
        assert is_placeholder_team(name) is True

    @pytest.mark.parametrize("name", ["Wildcats", "Lions", "C5", "Winners United", ""])
    def test_real_names(self, name):
        assert is_placeholder_team(name) is False
