"""
Channel boundary between the execution engine and a live SQL Server session.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ResultShape(Enum):
    """What the caller wants back from :meth:`Channel.execute`."""

    ROWS = "rows"  # QueryResult
    SCALAR = "scalar"  # first column of first row, or None
    AFFECTED = "affected"  # row count, -1 when unknown


@runtime_checkable
class Channel(Protocol):
    """
    An open, authenticated session.

    Implementations raise :class:`~mssqlhop.domain.errors.ChannelError`
    for every failure reported by the server or the driver.
    """

    def execute(self, statement: str, shape: ResultShape, timeout: int) -> Any:
        ...

    def duplicate(self) -> "Channel":
        """Open a new, independent session with the same credentials."""
        ...

    def close(self) -> None:
        ...

    @property
    def is_open(self) -> bool:
        ...

    @property
    def database(self) -> str | None:
        ...

    @property
    def server_version(self) -> str | None:
        ...
