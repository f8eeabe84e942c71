"""Tests for the shared input validators."""

from __future__ import annotations

import pytest

from stridetrack.validation import parse_key_values, sanitize_actor, sanitize_role


class TestSanitizeActor:
    def test_strips_whitespace(self) -> None:
        assert sanitize_actor("  asha  ") == ("asha", None)

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty(self, value: str) -> None:
        cleaned, err = sanitize_actor(value)
        assert cleaned == ""
        assert err == "actor must not be empty"

    def test_non_string(self) -> None:
        assert sanitize_actor(42)[1] == "actor must be a string"

    @pytest.mark.parametrize("value", ["bad\nactor", "\x00x", "zero\u200bwidth"])
    def test_control_characters(self, value: str) -> None:
        _, err = sanitize_actor(value)
        assert err is not None
        assert "control characters" in err

    def test_too_long(self) -> None:
        _, err = sanitize_actor("a" * 129)
        assert err == "actor must be at most 128 characters"

    def test_unicode_names_allowed(self) -> None:
        assert sanitize_actor("Dr. Ñandú") == ("Dr. Ñandú", None)


class TestSanitizeRole:
    def test_lowercases(self) -> None:
        assert sanitize_role(" Committee ") == ("committee", None)

    @pytest.mark.parametrize("value", ["", "1lead", "has space", "x" * 40])
    def test_invalid(self, value: str) -> None:
        cleaned, err = sanitize_role(value)
        assert cleaned == ""
        assert err is not None

    def test_non_string(self) -> None:
        assert sanitize_role(None)[1] == "role must be a string"


class TestParseKeyValues:
    def test_pairs(self) -> None:
        assert parse_key_values(["reviewer_name=Asha", "note=a=b"]) == {"reviewer_name": "Asha", "note": "a=b"}

    def test_empty_value_kept(self) -> None:
        assert parse_key_values(["estimated_timeline="]) == {"estimated_timeline": ""}

    @pytest.mark.parametrize("pair", ["novalue", "=x", " =x"])
    def test_malformed(self, pair: str) -> None:
        with pytest.raises(ValueError, match="--field expects key=value"):
            parse_key_values([pair])
