"""
Login, user and impersonation queries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mssqlhop.domain.compiler import quote_literal
from mssqlhop.domain.errors import ChannelError, ImpersonationFailedError
from mssqlhop.infrastructure.sql.channel import ResultShape

if TYPE_CHECKING:
    from mssqlhop.application.query_service import QueryService


logger = logging.getLogger(__name__)

FIXED_SERVER_ROLES = (
    "sysadmin",
    "serveradmin",
    "securityadmin",
    "processadmin",
    "setupadmin",
    "bulkadmin",
    "diskadmin",
    "dbcreator",
)


class UserService:
    """Identity queries run on the current execution server."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service
        self.mapped_user: str | None = None
        self.system_user: str | None = None
        self._admin_cache: dict[str, bool] = {}

    def get_info(self) -> tuple[str | None, str | None]:
        """
        Returns:
            (database user, server login) on the execution server
        """
        result = self.query_service.execute_rows(
            "SELECT USER_NAME() AS [User], SYSTEM_USER AS [Login];"
        )
        if not result.is_empty:
            self.mapped_user, self.system_user = result.rows[0][:2]
        return self.mapped_user, self.system_user

    def is_admin(self) -> bool:
        """sysadmin membership, cached per execution server."""
        key = self.query_service.execution_server.hostname.lower()
        if key not in self._admin_cache:
            self._admin_cache[key] = self.is_member_of_role("sysadmin")
        return self._admin_cache[key]

    def is_member_of_role(self, role: str) -> bool:
        value = self.query_service.execute_scalar(
            f"SELECT IS_SRVROLEMEMBER({quote_literal(role)});"
        )
        return value is not None and int(value) == 1

    def get_server_roles(self) -> list[str]:
        return [role for role in FIXED_SERVER_ROLES if self.is_member_of_role(role)]

    def can_impersonate(self, login: str) -> bool:
        """True for sysadmins and for logins holding an IMPERSONATE grant."""
        if self.is_admin():
            logger.debug("sysadmin can impersonate %s", login)
            return True

        value = self.query_service.execute_scalar(
            "SELECT 1 FROM master.sys.server_permissions a "
            "INNER JOIN master.sys.server_principals b "
            "ON a.grantor_principal_id = b.principal_id "
            "WHERE a.permission_name = 'IMPERSONATE' "
            f"AND b.name = {quote_literal(login)};"
        )
        return value is not None and int(value) == 1

    def impersonate_user(self, login: str) -> None:
        """
        ``EXECUTE AS LOGIN`` on the direct connection.

        Raises:
            ImpersonationFailedError: If the server refuses
        """
        service = self.query_service
        try:
            service.channel.execute(
                f"EXECUTE AS LOGIN = {quote_literal(login)};",
                ResultShape.AFFECTED,
                service.settings.default_timeout,
            )
        except ChannelError as e:
            raise ImpersonationFailedError(login) from e
        logger.info("Impersonating login %s", login)
        self._admin_cache.clear()

    def revert_impersonation(self) -> None:
        service = self.query_service
        service.channel.execute("REVERT;", ResultShape.AFFECTED, service.settings.default_timeout)
        logger.info("Reverted impersonation")
        self._admin_cache.clear()
