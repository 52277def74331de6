"""
Current login, database user and server roles.
"""

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.models import QueryResult


class WhoamiAction(BaseAction):
    name = "whoami"
    description = "Show the login, mapped user and fixed server roles"

    def execute(self, context) -> QueryResult:
        users = context.user_service
        mapped_user, system_user = users.get_info()
        roles = users.get_server_roles()

        return QueryResult(
            columns=["Property", "Value"],
            rows=[
                ("Execution Server", context.query_service.execution_server.hostname),
                ("Logged-in As", system_user or ""),
                ("Mapped To User", mapped_user or ""),
                ("Server Roles", ", ".join(roles) or "none"),
            ],
        )
