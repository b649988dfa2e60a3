# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Tests for item and location name validation."""

import pytest

from vaultbridge import InvalidNameError, validate_item_name, validate_location_name, validate_name
from vaultbridge.validation import DANGEROUS_CHARS, MAX_NAME_LENGTH


class TestValidateName:
    """Tests for validate_name."""

    @pytest.mark.parametrize("name", [
        "api-key",
        "prod.database.password",
        "myapp/api-key",
        "name with spaces",
        "under_score",
        "multi\nline",
        "tab\tseparated",
        "ünïcödé-名前",
        "a" * MAX_NAME_LENGTH,
    ])
    def test_accepts_safe_names(self, name):
        validate_name(name)

    def test_rejects_empty(self):
        with pytest.raises(InvalidNameError, match="empty"):
            validate_name("")

    def test_rejects_too_long(self):
        with pytest.raises(InvalidNameError, match="maximum length"):
            validate_name("a" * (MAX_NAME_LENGTH + 1))

    def test_length_counts_characters_not_bytes(self):
        validate_name("é" * MAX_NAME_LENGTH)

    def test_rejects_null_byte(self):
        with pytest.raises(InvalidNameError, match="null byte"):
            validate_name("api\0key")

    @pytest.mark.parametrize("char", ["\r", "\x1b", "\x07", "\x7f", "\x85"])
    def test_rejects_control_characters(self, char):
        with pytest.raises(InvalidNameError, match="control characters"):
            validate_name(f"api{char}key")

    @pytest.mark.parametrize("char", list(DANGEROUS_CHARS))
    def test_rejects_each_dangerous_character(self, char):
        with pytest.raises(InvalidNameError, match="dangerous characters"):
            validate_name(f"api{char}key")

    @pytest.mark.parametrize("name", [
        "name; rm -rf /",
        "$(whoami)",
        "`id`",
        "a | b",
        "a && b",
        "../../etc/passwd'",
    ])
    def test_rejects_injection_attempts(self, name):
        with pytest.raises(InvalidNameError):
            validate_name(name)

    def test_error_message_prefix(self):
        with pytest.raises(InvalidNameError) as exc_info:
            validate_name("")

        assert str(exc_info.value).startswith("invalid item name:")


class TestAliases:
    """Item and location names follow the same rule."""

    @pytest.mark.parametrize("name", ["ok-name", "", "bad;name", "x" * 300, "nul\0"])
    def test_same_outcome(self, name):
        outcomes = []
        for validator in (validate_name, validate_item_name, validate_location_name):
            try:
                validator(name)
                outcomes.append(None)
            except InvalidNameError as e:
                outcomes.append(str(e))

        assert len(set(outcomes)) == 1
