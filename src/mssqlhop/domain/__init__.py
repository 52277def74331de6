"""
Domain layer: server descriptors, linked server chains, the statement
compiler and failure classification. No I/O.
"""

from mssqlhop.domain.linked_servers import LinkedServers
from mssqlhop.domain.models import QueryResult
from mssqlhop.domain.server import Server

__all__ = ["LinkedServers", "QueryResult", "Server"]
