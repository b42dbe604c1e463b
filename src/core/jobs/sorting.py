"""
Sort state of the job list.

Columns map onto listing sort keys. The "age" column is shown inverted
relative to its key: the oldest job has the largest age, so sorting age
descending means sorting by creation time ascending.
"""

from dataclasses import dataclass

from src.core.models import OrderExpression

# Columns whose displayed direction is the opposite of the key's direction
INVERTED_COLUMNS: dict[str, str] = {
    "age": "created",
}


@dataclass
class SortState:
    """
    Currently selected sort column and its displayed direction.

    Example:
        >>> state = SortState("name", ascending=True)
        >>> state.select("name").ascending
        False
        >>> state.select("age").to_order()
        [OrderExpression(field='created', ascending=True)]
    """

    column: str = "created"
    ascending: bool = False

    def select(self, column: str) -> "SortState":
        """
        Return the state after clicking a column.

        Re-selecting the current column toggles the direction; any other
        column starts out descending.
        """
        if column == self.column:
            return SortState(column, not self.ascending)
        return SortState(column, False)

    @property
    def field(self) -> str:
        """Listing field this column sorts by."""
        return INVERTED_COLUMNS.get(self.column, self.column)

    def to_order(self) -> list[OrderExpression]:
        """Order expressions for the listing call."""
        ascending = self.ascending
        if self.column in INVERTED_COLUMNS:
            ascending = not ascending
        return [OrderExpression(field=self.field, ascending=ascending)]
