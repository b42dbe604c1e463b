"""Tests for job list sort state."""

from src.core.jobs.sorting import SortState
from src.core.models import OrderExpression


class TestSortState:
    """Tests for SortState."""

    def test_default_is_newest_first(self):
        assert SortState().to_order() == [OrderExpression("created", False)]

    def test_new_column_defaults_to_descending(self):
        state = SortState("name", ascending=True).select("owner")

        assert state.column == "owner"
        assert state.ascending is False

    def test_toggle_twice_restores_direction(self):
        state = SortState("name", ascending=False)

        toggled = state.select("name")
        restored = toggled.select("name")

        assert toggled.ascending is True
        assert restored == state

    def test_age_selected_fresh_is_inverted(self):
        state = SortState().select("age")

        assert state.ascending is False
        assert state.field == "created"
        assert state.to_order() == [OrderExpression("created", True)]

    def test_age_toggled_stays_inverted(self):
        state = SortState().select("age").select("age")

        assert state.ascending is True
        assert state.to_order() == [OrderExpression("created", False)]

    def test_select_returns_new_state(self):
        state = SortState("name")

        state.select("name")

        assert state.ascending is False
