"""
Server configuration options (``sp_configure``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mssqlhop.domain.compiler import quote_literal
from mssqlhop.domain.errors import UnknownConfigurationOptionError
from mssqlhop.domain.models import QueryResult

if TYPE_CHECKING:
    from mssqlhop.application.query_service import QueryService


logger = logging.getLogger(__name__)

ADVANCED_OPTIONS = "show advanced options"

# Options worth checking on a new server, in display order
SECURITY_OPTIONS = {
    "xp_cmdshell": "Execute operating system commands",
    "Ole Automation Procedures": "Use OLE Automation objects",
    "clr enabled": "Execute CLR assemblies",
    "Agent XPs": "SQL Server Agent extended procedures",
    "Ad Hoc Distributed Queries": "OPENROWSET/OPENDATASOURCE queries",
    ADVANCED_OPTIONS: "Access advanced configuration options",
    "remote access": "Allow remote server access",
    "remote admin connections": "Dedicated Admin Connection (DAC)",
    "Database Mail XPs": "Send emails via Database Mail",
    "SMO and DMO XPs": "SQL Server Management Objects",
}


class ConfigurationService:
    """Reads and changes ``sys.configurations`` on the execution server."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service

    def get_status(self, option: str) -> int | None:
        """``value_in_use`` of an option, or None when the server does not show it."""
        value = self.query_service.execute_scalar(
            f"SELECT value_in_use FROM sys.configurations WHERE name = {quote_literal(option)};"
        )
        return None if value is None else int(value)

    def list_security_options(self) -> QueryResult:
        """Current state of :data:`SECURITY_OPTIONS` visible on the server."""
        names = ", ".join(quote_literal(name) for name in SECURITY_OPTIONS)
        result = self.query_service.execute_rows(
            f"SELECT name, value_in_use FROM sys.configurations WHERE name IN ({names});"
        )
        in_use = {str(name).lower(): value for name, value, *_ in result.rows}

        rows = []
        for name, description in SECURITY_OPTIONS.items():
            value = in_use.get(name.lower())
            if value is None:
                continue
            rows.append((name, int(value) == 1, description))
        return QueryResult(columns=["Option", "Activated", "Description"], rows=rows)

    def ensure_advanced_options(self) -> None:
        if self.get_status(ADVANCED_OPTIONS) == 1:
            logger.debug("Advanced options already enabled")
            return
        logger.info("Enabling advanced options")
        self._configure(ADVANCED_OPTIONS, 1)

    def set_option(self, option: str, value: int) -> bool:
        """
        Set an option through ``sp_configure`` and ``RECONFIGURE``.

        Returns:
            False when the option already had that value

        Raises:
            UnknownConfigurationOptionError: If the option is not visible
            RpcRequiredError: Through an OPENQUERY-only chain
        """
        if option.lower() != ADVANCED_OPTIONS:
            self.ensure_advanced_options()

        current = self.get_status(option)
        if current is None:
            raise UnknownConfigurationOptionError(option)
        if current == value:
            logger.info("Configuration option '%s' is already set to %d", option, value)
            return False

        logger.info("Updating configuration option '%s' to %d", option, value)
        self._configure(option, value)
        return True

    def _configure(self, option: str, value: int) -> None:
        self.query_service.execute_non_query(
            f"EXEC sp_configure {quote_literal(option)}, {int(value)}; RECONFIGURE;"
        )
