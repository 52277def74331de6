"""
SQL Server channel package.

The pyodbc implementation lives in
:mod:`mssqlhop.infrastructure.sql.odbc_channel` and is imported on demand.
"""

from mssqlhop.infrastructure.sql.channel import Channel, ResultShape
from mssqlhop.infrastructure.sql.connection_profile import AuthType, ConnectionProfile

__all__ = [
    "AuthType",
    "Channel",
    "ConnectionProfile",
    "ResultShape",
]
