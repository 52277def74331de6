"""
Base class for actions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

from mssqlhop.domain.errors import MissingRequiredArgumentError
from mssqlhop.domain.models import QueryResult

if TYPE_CHECKING:
    from mssqlhop.application.database_context import DatabaseContext


class BaseAction(ABC):
    """
    One enumeration or exploitation step run against a database context.

    Subclasses set ``name``, ``description`` and ``usage`` and implement
    :meth:`execute`. Arguments are validated before any connection work.
    """

    name: str = ""
    description: str = ""
    usage: str = ""
    min_arguments: int = 0
    max_arguments: int | None = 0

    def __init__(self):
        self.arguments: List[str] = []

    def validate_arguments(self, args: List[str]) -> None:
        """
        Raises:
            MissingRequiredArgumentError: On too few or too many arguments
        """
        if len(args) < self.min_arguments:
            raise MissingRequiredArgumentError(
                f"Action '{self.name}' requires arguments: {self.usage}"
            )
        if self.max_arguments is not None and len(args) > self.max_arguments:
            raise MissingRequiredArgumentError(
                f"Action '{self.name}' takes at most {self.max_arguments} argument(s): "
                f"{self.usage or 'none'}"
            )
        self.arguments = list(args)

    @abstractmethod
    def execute(self, context: DatabaseContext) -> QueryResult:
        """Run the action and return what should be displayed."""
