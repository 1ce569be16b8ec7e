"""Tests for identifier generation and validation."""

import pytest

from errors import InvalidIdentifier
from identifiers import ID_LENGTH, ensure_valid_id, is_valid_id, new_id


class TestIsValidId:
    def test_generated_ids_are_valid(self):
        value = new_id()
        assert len(value) == ID_LENGTH
        assert is_valid_id(value)

    def test_generated_ids_are_unique(self):
        assert len({new_id() for _ in range(100)}) == 100

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "R1",
            "abc",
            "0" * (ID_LENGTH - 1),
            "0" * (ID_LENGTH + 1),
            "g" * ID_LENGTH,
            "A" * ID_LENGTH,
            "0" * (ID_LENGTH - 1) + "\n",
            None,
            12345,
        ],
    )
    def test_rejects_malformed_values(self, value):
        assert not is_valid_id(value)


class TestEnsureValidId:
    def test_returns_value_when_valid(self):
        value = new_id()
        assert ensure_valid_id(value) == value

    def test_raises_with_label(self):
        with pytest.raises(InvalidIdentifier) as exc_info:
            ensure_valid_id("bad", "room id")
        assert exc_info.value.message == "Invalid room id"
        assert exc_info.value.status_code == 400
