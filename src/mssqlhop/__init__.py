"""
mssqlhop - SQL Server linked server traversal tool.

Connects to a SQL Server and runs actions on it or on any server reachable
through a chain of linked servers, with per-hop impersonation and database.

Usage:
    # CLI
    mssqlhop SQL01 -c local -u sa -p secret -l "SQL02/webapp,SQL03" whoami

    # Programmatic
    from mssqlhop.application import DatabaseContext
    from mssqlhop.infrastructure.sql import ConnectionProfile

    with DatabaseContext.connect(ConnectionProfile(server="SQL01", ...)) as context:
        context.query_service.set_linked_servers("SQL02,SQL03")
        print(context.query_service.execute_scalar("SELECT @@SERVERNAME;"))
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
