"""
Linked servers and their login mappings.
"""

import logging

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.domain.models import QueryResult


logger = logging.getLogger(__name__)

LINKS_QUERY = """SELECT
    srv.name AS [Link],
    srv.product AS [Product],
    srv.provider AS [Provider],
    srv.data_source AS [Data Source],
    COALESCE(sp.name, 'N/A') AS [Local Login],
    ll.uses_self_credential AS [Is Self Mapping],
    ll.remote_name AS [Remote Login],
    srv.is_rpc_out_enabled AS [RPC Out],
    srv.is_data_access_enabled AS [OPENQUERY],
    srv.is_collation_compatible AS [Collation]
FROM sys.servers srv
LEFT JOIN sys.linked_logins ll ON srv.server_id = ll.server_id
LEFT JOIN sys.server_principals sp ON ll.local_principal_id = sp.principal_id
WHERE srv.is_linked = 1
ORDER BY srv.name;"""


class LinksAction(BaseAction):
    name = "links"
    description = "List linked servers, login mappings and RPC / data access flags"

    def execute(self, context) -> QueryResult:
        service = context.query_service
        if service.is_azure_sql():
            logger.warning("Linked servers are not available on Azure SQL Database")
            return QueryResult()

        result = service.execute_rows(LINKS_QUERY)
        if result.is_empty:
            logger.info("No linked servers on %s", service.execution_server.hostname)
        return result
