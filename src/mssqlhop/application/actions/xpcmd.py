"""
Operating system commands through xp_cmdshell.
"""

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.compiler import quote_literal
from mssqlhop.domain.models import QueryResult


class XpCmdAction(BaseAction):
    """
    Runs ``xp_cmdshell`` on the execution server.

    Needs RPC on every hop: through OPENQUERY-only chains the statement is
    refused before it is sent.
    """

    name = "xpcmd"
    description = "Run an operating system command with xp_cmdshell"
    usage = "<command>"
    min_arguments = 1
    max_arguments = None

    def execute(self, context) -> QueryResult:
        command = " ".join(self.arguments)
        result = context.query_service.execute_rows(
            f"EXEC master..xp_cmdshell {quote_literal(command)};"
        )
        lines = [(row[0],) for row in result.rows if row and row[0] is not None]
        return QueryResult(columns=["output"], rows=lines)
