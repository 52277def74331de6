"""
Databases on the execution server.
"""

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.models import QueryResult

DATABASES_QUERY = """SELECT
    name AS [Name],
    database_id AS [ID],
    HAS_DBACCESS(name) AS [Accessible],
    is_trustworthy_on AS [Trustworthy],
    state_desc AS [State]
FROM sys.databases
ORDER BY name;"""


class DatabasesAction(BaseAction):
    name = "databases"
    description = "List databases with access and TRUSTWORTHY flags"

    def execute(self, context) -> QueryResult:
        return context.query_service.execute_rows(DATABASES_QUERY)
