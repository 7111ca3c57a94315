"""
Tests for the Record domain model
"""

from dataclasses import FrozenInstanceError

import pytest

from rollup.domain.records import Record


class TestRecord:
    """Test Record construction and accessors"""

    def test_done_category(self):
        """Test that only the 'done' category counts as done"""
        assert Record(key="PROJ-1", status_category="done").is_done
        assert not Record(key="PROJ-1", status_category="indeterminate").is_done
        assert not Record(key="PROJ-1").is_done

    @pytest.mark.parametrize("status,blocked", [("Blocked", True), ("blocked", True), ("Blocked by QA", False), ("", False)])
    def test_blocked_status(self, status, blocked):
        """Test the exact, case-insensitive blocked match"""
        assert Record(key="PROJ-1", status_name=status).is_blocked is blocked

    @pytest.mark.parametrize(
        "value,expected",
        [(5, 5.0), (2.5, 2.5), (None, 0.0), ("5", 0.0), (True, 0.0), (float("inf"), 0.0), ([5], 0.0)],
    )
    def test_points_accessor(self, value, expected):
        """Test that only finite numbers count as points"""
        record = Record(key="PROJ-1", custom_fields={"story_points": value})

        assert record.points("story_points") == expected

    def test_points_for_absent_field(self):
        """Test that a missing field reads as 0"""
        assert Record(key="PROJ-1").points("customfield_10016") == 0.0

    def test_empty_key_rejected(self):
        """Test that a key is required"""
        with pytest.raises(ValueError, match="key cannot be empty"):
            Record(key="")

    def test_record_is_immutable(self):
        """Test that records and their field bags cannot be mutated"""
        fields = {"story_points": 3}
        record = Record(key="PROJ-1", custom_fields=fields)
        fields["story_points"] = 99

        assert record.points("story_points") == 3
        with pytest.raises(FrozenInstanceError):
            record.key = "PROJ-2"  # type: ignore[misc]
        with pytest.raises(TypeError):
            record.custom_fields["story_points"] = 5  # type: ignore[index]

    def test_equality_ignores_field_bag(self):
        """Test that equality is decided by the fixed attributes"""
        assert Record(key="PROJ-1", custom_fields={"a": 1}) == Record(key="PROJ-1", custom_fields={"a": 2})
