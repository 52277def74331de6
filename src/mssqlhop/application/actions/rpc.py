"""
Toggle RPC out on a linked server.
"""

import logging

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.compiler import quote_literal
from mssqlhop.domain.errors import MissingRequiredArgumentError
from mssqlhop.domain.models import QueryResult


logger = logging.getLogger(__name__)

RPC_MODES = {"enable": "true", "disable": "false"}


class RpcAction(BaseAction):
    name = "rpc"
    description = "Enable or disable 'rpc out' on a linked server"
    usage = "<enable|disable> <linked server>"
    min_arguments = 2
    max_arguments = 2

    def validate_arguments(self, args) -> None:
        super().validate_arguments(args)
        if self.mode not in RPC_MODES:
            raise MissingRequiredArgumentError(
                f"Invalid mode '{self.arguments[0]}'. Use: {', '.join(RPC_MODES)}"
            )

    @property
    def mode(self) -> str:
        return self.arguments[0].lower()

    @property
    def link(self) -> str:
        return self.arguments[1]

    def execute(self, context) -> QueryResult:
        statement = (
            f"EXEC sp_serveroption @server = {quote_literal(self.link)}, "
            f"@optname = 'rpc out', @optvalue = '{RPC_MODES[self.mode]}';"
        )
        context.query_service.execute_non_query(statement)
        logger.info("RPC out %sd on %s", self.mode, self.link)
        return QueryResult(columns=["Link", "RPC Out"], rows=[(self.link, RPC_MODES[self.mode])])
