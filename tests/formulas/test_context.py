"""
Tests for the formula context builder
"""

from rollup.formulas.context import build_context


class TestBuildContext:
    """Test reduction of descendants into formula variables"""

    def test_sample_tree(self, sample_records):
        """Test counts, sums and percent for the sample children"""
        ctx = build_context(sample_records, "story_points")

        assert ctx.child_count == 3
        assert ctx.total_points == 16
        assert ctx.done_count == 2
        assert ctx.undone_count == 1
        assert ctx.remaining_points == 3
        assert ctx.percent_complete == 67

    def test_empty_set(self):
        """Test that no descendants produce an all-zero context"""
        ctx = build_context([], "story_points")

        assert ctx.child_count == 0
        assert ctx.total_points == 0
        assert ctx.done_count == 0
        assert ctx.undone_count == 0
        assert ctx.remaining_points == 0
        assert ctx.percent_complete == 0

    def test_missing_and_non_numeric_points_count_as_zero(self, record_factory):
        """Test that absent, textual and boolean point values are ignored"""
        records = [
            record_factory("PROJ-2", None),
            record_factory("PROJ-3", 4),
            record_factory("PROJ-4", "eight"),
            record_factory("PROJ-5", True),
            record_factory("PROJ-6", float("nan")),
        ]

        ctx = build_context(records, "story_points")

        assert ctx.child_count == 5
        assert ctx.total_points == 4
        assert ctx.remaining_points == 4

    def test_configurable_points_field(self, record_factory):
        """Test that points are read from the configured field only"""
        records = [
            record_factory("PROJ-2", 5, points_field="customfield_10016"),
            record_factory("PROJ-3", 7, points_field="story_points"),
        ]

        ctx = build_context(records, "customfield_10016")

        assert ctx.total_points == 5

    def test_default_points_field(self, sample_records):
        """Test that None falls back to story_points"""
        assert build_context(sample_records).total_points == 16

    def test_percent_rounds_half_up(self, record_factory):
        """Test that 1 of 8 done (12.5%) rounds to 13"""
        records = [record_factory("PROJ-1", 1, "done")] + [record_factory(f"PROJ-{n}", 1) for n in range(2, 9)]

        ctx = build_context(records, "story_points")

        assert ctx.percent_complete == 13

    def test_fractional_points_keep_decimals(self, record_factory):
        """Test that fractional estimates are summed exactly"""
        records = [record_factory("PROJ-2", 0.5), record_factory("PROJ-3", 1.25)]

        assert build_context(records, "story_points").total_points == 1.75

    def test_done_plus_undone_equals_children(self, sample_records, record_factory):
        """Test the count invariant"""
        records = sample_records + [record_factory("PROJ-9", 2, "new")]

        ctx = build_context(records, "story_points")

        assert ctx.done_count + ctx.undone_count == ctx.child_count
