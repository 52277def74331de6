"""
Linked server chain model.

Holds the ordered hops between the direct connection and the final
execution server, plus the parallel arrays the compiler consumes.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from mssqlhop.domain import compiler
from mssqlhop.domain.errors import ChainSpecificationError
from mssqlhop.domain.server import Server, split_outside_brackets


logger = logging.getLogger(__name__)

DIRECT_CONNECTION_SENTINEL = "0"


class LinkedServers:
    """
    Ordered chain of linked server hops.

    Derived arrays, all rebuilt together by :meth:`_recompute_chain`:

    - ``computable_server_names``: ``["0", "SQL02", "SQL03"]``
    - ``computable_impersonation_names``: ``["webapp", ""]``
    - ``computable_database_names``: ``["", "appdb"]``
    - ``server_names``: ``["SQL02", "SQL03"]``
    """

    def __init__(self, chain: str | Iterable[Server] | None = None):
        if chain is None:
            servers: list[Server] = []
        elif isinstance(chain, str):
            servers = self.parse_server_chain(chain) if chain.strip() else []
        else:
            servers = [server.copy() for server in chain]

        self._server_chain = servers
        self._recompute_chain()

    # ------------------------------------------------------------------
    # Chain access
    # ------------------------------------------------------------------

    @property
    def server_chain(self) -> tuple[Server, ...]:
        return tuple(self._server_chain)

    @property
    def server_names(self) -> list[str]:
        return list(self._server_names)

    @property
    def computable_server_names(self) -> list[str]:
        return list(self._computable_server_names)

    @property
    def computable_impersonation_names(self) -> list[str]:
        return list(self._computable_impersonation_names)

    @property
    def computable_database_names(self) -> list[str]:
        return list(self._computable_database_names)

    @property
    def is_empty(self) -> bool:
        return not self._server_chain

    @property
    def last(self) -> Server | None:
        return self._server_chain[-1] if self._server_chain else None

    def __len__(self) -> int:
        return len(self._server_chain)

    def __iter__(self) -> Iterator[Server]:
        return iter(self.server_chain)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_to_chain(
        self,
        new_server: str | Server,
        impersonation_principal: str | None = None,
        database: str | None = None,
    ) -> None:
        """
        Append a hop and recompute the derived arrays.

        Raises:
            ChainSpecificationError: If the server name is empty
        """
        if isinstance(new_server, Server):
            server = new_server.copy()
        else:
            if not new_server or not new_server.strip():
                raise ChainSpecificationError("Server name cannot be null or empty.")
            name = new_server.strip()
            server = Server(
                hostname=name,
                alias=name,
                impersonation_principal=impersonation_principal or None,
                database=database or None,
            )

        logger.debug("Adding server %s to the linked server chain.", server.routing_name)
        self._server_chain.append(server)
        self._recompute_chain()

    def copy(self) -> LinkedServers:
        """Deep copy: hops are copied, nothing is shared."""
        return LinkedServers(self._server_chain)

    def _recompute_chain(self) -> None:
        names = [server.routing_name for server in self._server_chain]
        self._computable_server_names = [DIRECT_CONNECTION_SENTINEL] + names
        self._computable_impersonation_names = [
            server.impersonation_principal or "" for server in self._server_chain
        ]
        self._computable_database_names = [
            server.database or "" for server in self._server_chain
        ]
        self._server_names = names

    # ------------------------------------------------------------------
    # Textual form
    # ------------------------------------------------------------------

    @staticmethod
    def parse_server_chain(chain_input: str) -> list[Server]:
        """
        Parse ``"SQL02/webapp,SQL03@appdb"`` into servers.

        Raises:
            ChainSpecificationError: On empty input or any malformed hop
        """
        if not chain_input or not chain_input.strip():
            raise ChainSpecificationError("Server list cannot be null or empty.")

        servers = []
        for part in split_outside_brackets(chain_input, ","):
            if not part.strip():
                raise ChainSpecificationError(f"Empty hop in chain '{chain_input}'.")
            servers.append(Server.parse(part))
        return servers

    def get_chain_parts(self) -> list[str]:
        return [server.to_argument() for server in self._server_chain]

    def get_chain_arguments(self) -> str:
        return ",".join(self.get_chain_parts())

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def build_remote_procedure_call_chain(self, statement: str) -> str:
        return compiler.build_remote_procedure_call_chain(
            self._computable_server_names,
            statement,
            impersonations=self._computable_impersonation_names,
            databases=self._computable_database_names,
        )

    def build_select_openquery_chain(self, statement: str) -> str:
        return compiler.build_select_openquery_chain(
            self._computable_server_names,
            statement,
            impersonations=self._computable_impersonation_names,
            databases=self._computable_database_names,
        )

    def __str__(self) -> str:
        if self.is_empty:
            return "LinkedServers(empty)"
        return f"LinkedServers({self.get_chain_arguments()})"

    def __repr__(self) -> str:
        return f"LinkedServers(chain={self.get_chain_parts()!r})"
