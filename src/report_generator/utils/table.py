"""
Column discovery and sorting for the report's open-ended data table.

Table rows have no fixed key set, so columns are discovered at runtime from
the first row. Sorting always works on a copy; the report itself is never
reordered.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..models import TableRow

ASCENDING = "asc"
DESCENDING = "desc"

_MISSING = object()


@dataclass(frozen=True)
class SortState:
    """The active sort column and direction of the table view."""

    key: Optional[str] = None
    direction: str = ASCENDING

    def toggle(self, key: str) -> "SortState":
        """Clicking the active ascending column flips it; anything else sorts ascending."""
        if self.key == key and self.direction == ASCENDING:
            return SortState(key=key, direction=DESCENDING)
        return SortState(key=key, direction=ASCENDING)


def discover_columns(rows: Sequence[TableRow]) -> List[str]:
    """Returns the keys of the first row, or an empty list for an empty table."""
    if not rows:
        return []
    return rows[0].keys()


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Numbers sort before text; text compares case-insensitively.
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value.lower())
    return (1, str(value).lower())


def sort_rows(rows: Sequence[TableRow], state: SortState) -> List[TableRow]:
    """
    Returns the rows ordered by `state`, leaving the input untouched.

    Rows that lack the sort key (or hold null for it) always come last,
    whatever the direction. The sort is stable, so ties keep their original order.
    """
    if state.key is None:
        return list(rows)

    present, missing = [], []
    for row in rows:
        value = row.get(state.key, _MISSING)
        if value is _MISSING or value is None:
            missing.append(row)
        else:
            present.append(row)

    present.sort(
        key=lambda row: _sort_key(row.get(state.key)),
        reverse=state.direction == DESCENDING,
    )
    return present + missing
