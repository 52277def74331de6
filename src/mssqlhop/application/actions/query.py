"""
Arbitrary T-SQL.
"""

import logging
import re

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.models import QueryResult


logger = logging.getLogger(__name__)

_NON_QUERY = re.compile(
    r"^\s*(?:INSERT|UPDATE|DELETE|MERGE|CREATE|ALTER|DROP|TRUNCATE|GRANT|REVOKE|DENY)\b",
    re.IGNORECASE,
)


class QueryAction(BaseAction):
    name = "query"
    description = "Execute a T-SQL statement"
    usage = "<statement>"
    min_arguments = 1
    max_arguments = None

    @property
    def statement(self) -> str:
        return " ".join(self.arguments)

    def execute(self, context) -> QueryResult:
        statement = self.statement
        service = context.query_service

        if _NON_QUERY.match(statement):
            affected = service.execute_non_query(statement)
            logger.info("Rows affected: %d", affected)
            return QueryResult(columns=["Rows Affected"], rows=[(affected,)])

        return service.execute_rows(statement)
