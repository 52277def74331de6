"""
Impersonation grants.
"""

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.models import QueryResult

IMPERSONATION_QUERY = """SELECT DISTINCT
    b.name AS [Login],
    b.type_desc AS [Type]
FROM sys.server_permissions a
INNER JOIN sys.server_principals b ON a.grantor_principal_id = b.principal_id
WHERE a.permission_name = 'IMPERSONATE'
ORDER BY b.name;"""


class ImpersonateAction(BaseAction):
    """Without an argument lists impersonable logins; with one, checks that login."""

    name = "impersonate"
    description = "List logins that can be impersonated, or check one"
    usage = "[login]"
    max_arguments = 1

    def execute(self, context) -> QueryResult:
        if self.arguments:
            login = self.arguments[0]
            allowed = context.user_service.can_impersonate(login)
            return QueryResult(columns=["Login", "Can Impersonate"], rows=[(login, allowed)])

        return context.query_service.execute_rows(IMPERSONATION_QUERY)
