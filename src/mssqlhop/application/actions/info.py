"""
Server information.
"""

import logging

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.errors import MssqlHopError
from mssqlhop.domain.models import QueryResult


logger = logging.getLogger(__name__)

# Note: CAST SERVERPROPERTY results to avoid ODBC sql_variant errors
INFO_QUERIES = {
    "Server Name": "SELECT @@SERVERNAME;",
    "Host Name": "SELECT CAST(SERVERPROPERTY('MachineName') AS NVARCHAR(256));",
    "Instance": "SELECT CAST(SERVERPROPERTY('InstanceName') AS NVARCHAR(256));",
    "Default Domain": "SELECT DEFAULT_DOMAIN();",
    "Version": "SELECT CAST(SERVERPROPERTY('ProductVersion') AS NVARCHAR(128));",
    "Product Level": "SELECT CAST(SERVERPROPERTY('ProductLevel') AS NVARCHAR(128));",
    "Edition": "SELECT CAST(SERVERPROPERTY('Edition') AS NVARCHAR(256));",
    "Clustered": "SELECT CAST(SERVERPROPERTY('IsClustered') AS INT);",
    "Integrated Security Only": "SELECT CAST(SERVERPROPERTY('IsIntegratedSecurityOnly') AS INT);",
    "Database": "SELECT DB_NAME();",
}


class InfoAction(BaseAction):
    name = "info"
    description = "Show server properties of the execution server"

    def execute(self, context) -> QueryResult:
        service = context.query_service
        rows = []
        for label, statement in INFO_QUERIES.items():
            try:
                value = service.execute_scalar(statement)
            except MssqlHopError as e:
                logger.debug("Could not read %s: %s", label, e)
                value = "N/A"
            rows.append((label, "" if value is None else str(value)))

        rows.append(("Legacy (2016 or earlier)", str(service.execution_server.is_legacy)))
        rows.append(("Azure SQL Database", str(service.execution_server.is_cloud_hosted)))
        return QueryResult(columns=["Property", "Value"], rows=rows)
