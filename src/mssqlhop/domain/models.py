"""
Result containers shared by the channel, the engine and the actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

from mssqlhop.domain.classification import WRAP_COLUMNS


@dataclass
class QueryResult:
    """Tabular result: ordered column names and ordered rows."""

    columns: List[str] = field(default_factory=list)
    rows: List[tuple] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[tuple]:
        return iter(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def first_value(self) -> Any:
        """First column of the first row, or None."""
        if not self.rows or not self.rows[0]:
            return None
        return self.rows[0][0]

    def column(self, name: str) -> List[Any]:
        index = self._index(name)
        return [row[index] for row in self.rows]

    def as_dicts(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]

    @property
    def is_wrapped(self) -> bool:
        """True for the single ``Result`` / ``Error`` row of a rewrapped statement."""
        return tuple(self.columns) == WRAP_COLUMNS

    @property
    def wrapped_error(self) -> str | None:
        if not self.is_wrapped or not self.rows:
            return None
        return self.rows[0][1]

    def _index(self, name: str) -> int:
        lowered = name.lower()
        for index, column in enumerate(self.columns):
            if column.lower() == lowered:
                return index
        raise KeyError(name)
