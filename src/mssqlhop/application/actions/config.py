"""
Show or change ``sp_configure`` options.
"""

import logging

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.errors import MissingRequiredArgumentError, UnknownConfigurationOptionError
from mssqlhop.domain.models import QueryResult


logger = logging.getLogger(__name__)


class ConfigAction(BaseAction):
    """
    No argument lists the security-relevant options, one shows that option,
    two set it (``config xp_cmdshell 1``).

    Setting needs RPC on every hop: ``sp_configure`` is refused through
    OPENQUERY-only chains before anything is sent.
    """

    name = "config"
    description = "List, show or set server configuration options"
    usage = "[option] [0|1]"
    max_arguments = 2

    def validate_arguments(self, args) -> None:
        super().validate_arguments(args)
        if len(self.arguments) == 2 and self.arguments[1] not in ("0", "1"):
            raise MissingRequiredArgumentError(
                f"Invalid value '{self.arguments[1]}'. Use 1 to enable or 0 to disable."
            )

    def execute(self, context) -> QueryResult:
        config = context.config_service

        if not self.arguments:
            result = config.list_security_options()
            enabled = sum(1 for row in result.rows if row[1])
            logger.info("%d configuration options checked, %d enabled", len(result), enabled)
            return result

        option = self.arguments[0]
        if len(self.arguments) == 2:
            value = int(self.arguments[1])
            config.set_option(option, value)
            return QueryResult(columns=["Option", "Value"], rows=[(option, value)])

        status = config.get_status(option)
        if status is None:
            raise UnknownConfigurationOptionError(option)
        return QueryResult(columns=["Option", "Value"], rows=[(option, status)])
