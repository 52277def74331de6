"""
Execution context resolution.

Finds out which server and database statements actually land on: the
directly connected host at connect time, and the final hop whenever a
linked server chain is attached. Failures are logged and never fatal.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mssqlhop.domain.errors import MssqlHopError
from mssqlhop.domain.server import Server
from mssqlhop.infrastructure.sql.channel import ResultShape

if TYPE_CHECKING:
    from mssqlhop.application.query_service import QueryService


logger = logging.getLogger(__name__)

DIRECT_IDENTITY_QUERY = "SELECT @@SERVERNAME, @@VERSION, DB_NAME();"
IDENTITY_QUERY = "SELECT @@SERVERNAME, @@VERSION;"
DATABASE_QUERY = "SELECT DB_NAME();"


def get_server_name(server_name: str) -> str:
    """``HOST\\INSTANCE`` -> ``HOST``."""
    return server_name.split("\\")[0].strip()


class ExecutionContextResolver:
    """Fills in the descriptors held by a :class:`QueryService`."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service

    def resolve_direct(self) -> Server:
        """Identify the directly connected server with a single round trip."""
        service = self.query_service
        server = service.direct_server.copy()
        database = service.direct_database

        try:
            result = service.channel.execute(
                DIRECT_IDENTITY_QUERY, ResultShape.ROWS, service.settings.default_timeout
            )
        except MssqlHopError as e:
            logger.warning("Could not identify %s: %s", server.hostname, e)
        else:
            if not result.is_empty:
                name, version, current_database = result.rows[0][:3]
                if name:
                    server.hostname = get_server_name(name)
                server.product_version = version
                database = current_database or database

        service.direct_server = server
        service.direct_database = database
        if not service.is_routed:
            service.execution_server = server.copy()
            service.execution_database = database

        logger.info("Connected to %s (database: %s)", server.hostname, database or "default")
        return server

    def resolve(self) -> Server | None:
        """
        Identify the final hop of the attached chain.

        The hop's alias stays the routing name; only the descriptive
        hostname and version change. Returns None for direct execution.
        """
        service = self.query_service
        chain = service.linked_servers
        if chain.is_empty:
            return None

        server = chain.last.copy()
        service.execution_server = server
        service.execution_database = server.database

        try:
            result = service.execute_rows(IDENTITY_QUERY)
        except MssqlHopError as e:
            logger.warning("Could not identify linked server %s: %s", server.routing_name, e)
        else:
            if not result.is_empty:
                name, version = result.rows[0][:2]
                if name:
                    server.hostname = get_server_name(name)
                server.product_version = version

        if not server.database:
            try:
                service.execution_database = service.execute_scalar(DATABASE_QUERY)
            except MssqlHopError as e:
                logger.warning("Could not determine database on %s: %s", server.routing_name, e)

        logger.info(
            "Execution server: %s via %s (database: %s)",
            server.hostname,
            chain.get_chain_arguments(),
            service.execution_database or "default",
        )
        return server
