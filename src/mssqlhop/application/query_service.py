"""
Query execution engine.

Routes every statement either straight to the connected server or through
the attached linked server chain, and recovers from the failures that have
a known fix:

- timeouts: the timeout is doubled
- RPC out disabled on a hop: switch the chain to nested OPENQUERY
- statement returns no rowset under OPENQUERY: wrap it in a TRY/CATCH
  block that always returns one ``Result`` / ``Error`` row
- database prefixes the destination rejects: strip them

Every recovery spends one unit of the shared retry budget.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mssqlhop.application.context_resolver import ExecutionContextResolver
from mssqlhop.domain.classification import (
    ClassifiedError,
    ErrorKind,
    classify_error,
    is_wrapped,
    looks_like_data_select,
    requires_rpc,
    strip_database_prefix,
    wrap_for_openquery,
)
from mssqlhop.domain.errors import (
    ChannelError,
    LinkedServerUnreachableError,
    QueryExecutionError,
    QueryValidationError,
    RpcRequiredError,
)
from mssqlhop.domain.linked_servers import LinkedServers
from mssqlhop.domain.models import QueryResult
from mssqlhop.domain.server import Server
from mssqlhop.infrastructure.cache.rpc_cache import RpcAvailabilityCache, shared_rpc_cache
from mssqlhop.infrastructure.config_loader import EngineSettings, RpcCacheScope
from mssqlhop.infrastructure.sql.channel import Channel, ResultShape


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recovery:
    """Next attempt's statement and timeout, with what to do before sending it."""

    statement: str
    timeout: int
    message: str | None = None
    downgrade: bool = False


def create_rpc_cache(settings: EngineSettings) -> RpcAvailabilityCache:
    """Private cache per context, or the process-wide one."""
    if settings.rpc_cache_scope is RpcCacheScope.PROCESS:
        return shared_rpc_cache()
    return RpcAvailabilityCache()


class QueryService:
    """
    Execution engine bound to one channel.

    Attributes:
        channel: Open session to the directly connected server
        direct_server: Descriptor of the directly connected server
        execution_server: Descriptor of the server statements land on
            (the final hop when a chain is attached)
        execution_database: Database statements land in, when known
        use_remote_procedure_call: True for ``EXEC AT`` routing, False for
            nested ``OPENQUERY``
    """

    def __init__(
        self,
        channel: Channel,
        settings: EngineSettings | None = None,
        rpc_cache: RpcAvailabilityCache | None = None,
        direct_server: Server | None = None,
    ):
        self.channel = channel
        self.settings = settings or EngineSettings()
        self.rpc_cache = rpc_cache if rpc_cache is not None else create_rpc_cache(self.settings)

        self.direct_server = direct_server.copy() if direct_server else Server(hostname="localhost")
        self.direct_database = self.direct_server.database
        self.execution_server = self.direct_server.copy()
        self.execution_database = self.direct_database

        self._linked_servers = LinkedServers()
        self.use_remote_procedure_call = True
        self._azure_cache: dict[str, bool] = {}

        self.resolver = ExecutionContextResolver(self)

    # ------------------------------------------------------------------
    # Chain management
    # ------------------------------------------------------------------

    @property
    def linked_servers(self) -> LinkedServers:
        """Copy of the attached chain."""
        return self._linked_servers.copy()

    @linked_servers.setter
    def linked_servers(self, chain: LinkedServers | str | None) -> None:
        self.set_linked_servers(chain)

    @property
    def is_routed(self) -> bool:
        return not self._linked_servers.is_empty

    def set_linked_servers(self, chain: LinkedServers | str | None) -> None:
        """
        Attach a chain (a private copy is kept) and resolve where it lands.

        An empty or None chain returns to direct execution.
        """
        if chain is None:
            chain = LinkedServers()
        elif isinstance(chain, str):
            chain = LinkedServers(chain)

        self._linked_servers = chain.copy()

        if self._linked_servers.is_empty:
            self.execution_server = self.direct_server.copy()
            self.execution_database = self.direct_database
            self.use_remote_procedure_call = True
            return

        logger.info("Linked server chain: %s", self._linked_servers.get_chain_arguments())
        self.execution_server = self._linked_servers.last.copy()
        self.execution_database = self.execution_server.database
        self.reset_strategy()
        self.resolver.resolve()

    def reset_strategy(self) -> None:
        """Back to RPC unless the destination is already known to lack it."""
        self.use_remote_procedure_call = not (
            self.is_routed and self.rpc_cache.is_unavailable(self._destination_key())
        )
        if not self.use_remote_procedure_call:
            logger.debug(
                "RPC out known to be disabled on %s; using OPENQUERY",
                self._destination_key(),
            )

    def disable_remote_procedure_call(self, server: str | None = None) -> None:
        """Switch to OPENQUERY routing and remember the destination lacks RPC."""
        self.use_remote_procedure_call = False
        if self.rpc_cache.mark_unavailable(self._destination_key()):
            logger.warning(
                "RPC out is not enabled on %s; falling back to OPENQUERY",
                server or self._destination_key(),
            )
        else:
            logger.debug("RPC out still unavailable on %s", self._destination_key())

    def _destination_key(self) -> str | None:
        last = self._linked_servers.last
        return last.routing_name if last else None

    def clone(self, channel: Channel, fresh_strategy: bool = True) -> QueryService:
        """
        Engine for another context: copied chain and resolved descriptors.

        Args:
            channel: Channel the new engine executes on
            fresh_strategy: Re-derive the strategy from the RPC cache
                instead of copying the current one
        """
        service = QueryService(channel, self.settings, direct_server=self.direct_server)
        service.direct_database = self.direct_database
        service._linked_servers = self._linked_servers.copy()
        service.execution_server = self.execution_server.copy()
        service.execution_database = self.execution_database

        if fresh_strategy:
            service.reset_strategy()
        else:
            service.use_remote_procedure_call = self.use_remote_procedure_call
        return service

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_rows(self, statement: str) -> QueryResult:
        """Run a statement and return its first result set."""
        return self._execute(statement, ResultShape.ROWS)

    def execute_scalar(self, statement: str) -> Any:
        """Run a statement and return the first column of the first row, or None."""
        return self._execute(statement, ResultShape.SCALAR)

    def execute_non_query(self, statement: str) -> int:
        """
        Run a statement for its side effects.

        Returns:
            Affected row count, -1 when the server reports none
        """
        return self._execute(statement, ResultShape.AFFECTED)

    def prepare_query(self, statement: str) -> str:
        """Compile ``statement`` for the current chain and strategy."""
        if not self.is_routed:
            return statement
        if self.use_remote_procedure_call:
            return self._linked_servers.build_remote_procedure_call_chain(statement)
        return self._linked_servers.build_select_openquery_chain(statement)

    def is_azure_sql(self) -> bool:
        """True when the execution server is Azure SQL Database (cached per server)."""
        key = self.execution_server.hostname.lower()
        if key in self._azure_cache:
            return self._azure_cache[key]

        if not self.execution_server.product_version:
            self.execution_server.product_version = self.execute_scalar("SELECT @@VERSION;")

        is_azure = self.execution_server.is_cloud_hosted
        self._azure_cache[key] = is_azure
        if is_azure:
            logger.info("%s is Azure SQL Database", self.execution_server.hostname)
        return is_azure

    def _execute(self, statement: str, shape: ResultShape) -> Any:
        if statement is None or not statement.strip():
            raise QueryValidationError("Query cannot be null or empty.")

        current = statement
        timeout = self.settings.default_timeout
        retry_count = 0

        while True:
            if self.is_routed and not self.use_remote_procedure_call and requires_rpc(current):
                raise RpcRequiredError(current)

            final_query = self.prepare_query(current)
            channel_shape = self._channel_shape(current, shape)
            logger.debug("Executing (timeout=%ss): %s", timeout, final_query)

            try:
                raw = self.channel.execute(final_query, channel_shape, timeout)
            except ChannelError as e:
                classified = classify_error(e)
                recovery = self._recover(classified, e, current, timeout)

                retry_count += 1
                if retry_count >= self.settings.max_retries:
                    logger.error(
                        "Giving up after %d attempts (%s): %s",
                        retry_count, classified.kind.value, classified.message,
                    )
                    raise QueryExecutionError(
                        f"Query failed after {retry_count} attempts: {classified.message}",
                        classified.kind,
                        current,
                    ) from e

                current, timeout = self._apply(recovery, classified)
                continue

            return self._finish(raw, shape, channel_shape, current)

    def _recover(
        self,
        classified: ClassifiedError,
        error: ChannelError,
        statement: str,
        timeout: int,
    ) -> Recovery:
        """
        Work out the fix for a classified failure without applying it.

        Raises:
            ChannelError: Unchanged, when the failure has no fix
            LinkedServerUnreachableError: When a hop cannot be reached
            QueryExecutionError: When a fix exists but cannot be applied
        """
        kind = classified.kind

        if kind is ErrorKind.LINK_UNREACHABLE and self.is_routed:
            server = self._linked_servers.last.routing_name
            logger.error("Linked server %s is unreachable: %s", server, classified.message)
            raise LinkedServerUnreachableError(server, classified.message) from error

        if kind is ErrorKind.TIMEOUT:
            return Recovery(
                statement,
                timeout * 2,
                f"Query timed out after {timeout}s; retrying with {timeout * 2}s",
            )

        if kind is ErrorKind.RPC_UNAVAILABLE and self.is_routed and self.use_remote_procedure_call:
            return Recovery(statement, timeout, downgrade=True)

        if kind is ErrorKind.NO_ROWSET and self.is_routed and not self.use_remote_procedure_call:
            if is_wrapped(statement) or looks_like_data_select(statement):
                raise QueryExecutionError(
                    "The statement returned no usable rowset through OPENQUERY. "
                    "Check the statement or enable RPC out on the linked server.",
                    kind,
                    statement,
                ) from error
            return Recovery(
                wrap_for_openquery(statement),
                timeout,
                "Statement returns no rowset through OPENQUERY; wrapping it",
            )

        if kind is ErrorKind.UNSUPPORTED_DB_PREFIX and classified.detail:
            stripped = strip_database_prefix(statement, classified.detail)
            if stripped == statement:
                raise QueryExecutionError(
                    f"Database prefix '{classified.detail}' is not supported and could not be removed.",
                    kind,
                    statement,
                ) from error
            return Recovery(
                stripped,
                timeout,
                f"Removing unsupported '{classified.detail}.' prefix from the statement",
            )

        logger.debug("Query failed (%s): %s", kind.value, error.message)
        raise error

    def _apply(self, recovery: Recovery, classified: ClassifiedError) -> tuple[str, int]:
        if recovery.downgrade:
            self.disable_remote_procedure_call(classified.detail)
        if recovery.message:
            logger.warning("%s", recovery.message)
        return recovery.statement, recovery.timeout

    def _channel_shape(self, statement: str, shape: ResultShape) -> ResultShape:
        # Wrapped statements and OPENQUERY routing only ever produce rows
        if shape is ResultShape.ROWS:
            return shape
        if is_wrapped(statement):
            return ResultShape.ROWS
        if shape is ResultShape.AFFECTED and self.is_routed and not self.use_remote_procedure_call:
            return ResultShape.ROWS
        return shape

    @staticmethod
    def _finish(raw: Any, shape: ResultShape, channel_shape: ResultShape, statement: str) -> Any:
        if channel_shape is shape:
            return raw

        result: QueryResult = raw
        if result.is_wrapped:
            error = result.wrapped_error
            if error is not None:
                raise QueryExecutionError(error, ErrorKind.OTHER, statement)
            value = result.first_value()
            if shape is ResultShape.AFFECTED:
                return int(value) if value is not None else -1
            return value

        if shape is ResultShape.AFFECTED:
            return len(result)
        return result.first_value()
