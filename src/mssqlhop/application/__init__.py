"""
Application layer package.

Services that orchestrate execution: the query engine, execution context
resolution, user queries, database contexts and the action catalog.
"""

from mssqlhop.application.database_context import DatabaseContext
from mssqlhop.application.query_service import QueryService

__all__ = ["DatabaseContext", "QueryService"]
