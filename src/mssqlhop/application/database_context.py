"""
Database context: one channel plus the services that run on it.
"""

from __future__ import annotations

import logging
from typing import Callable

from mssqlhop.application.configuration_service import ConfigurationService
from mssqlhop.application.query_service import QueryService
from mssqlhop.application.user_service import UserService
from mssqlhop.domain.errors import ImpersonationFailedError
from mssqlhop.infrastructure.config_loader import EngineSettings
from mssqlhop.infrastructure.sql.channel import Channel
from mssqlhop.infrastructure.sql.connection_profile import ConnectionProfile


logger = logging.getLogger(__name__)


class DatabaseContext:
    """
    Channel, execution engine, user and configuration services bundled together.

    Two ways to derive another context:

    - :meth:`duplicate` opens a second session with the same credentials.
      Safe for independent work; it owns and closes its channel.
    - :meth:`share_channel` reuses this session with its own chain and
      strategy. Session state (``EXECUTE AS``, ``USE``) is visible through
      both, and closing the shared context leaves the channel open.
    """

    def __init__(
        self,
        channel: Channel,
        settings: EngineSettings | None = None,
        query_service: QueryService | None = None,
        owns_channel: bool = True,
    ):
        self.channel = channel
        self.settings = settings or EngineSettings()
        self.query_service = query_service or QueryService(channel, self.settings)
        self.user_service = UserService(self.query_service)
        self.config_service = ConfigurationService(self.query_service)
        self.owns_channel = owns_channel
        self._closed = False

    @classmethod
    def connect(
        cls,
        profile: ConnectionProfile,
        settings: EngineSettings | None = None,
        channel_factory: Callable[[ConnectionProfile], Channel] | None = None,
    ) -> DatabaseContext:
        """
        Open a channel, identify the server and apply host impersonation.

        Raises:
            AuthenticationFailedError: If the login is rejected
            ImpersonationFailedError: If the requested login cannot be impersonated
        """
        settings = settings or EngineSettings()
        if channel_factory is None:
            from mssqlhop.infrastructure.sql.odbc_channel import OdbcChannel

            channel_factory = OdbcChannel.open

        channel = channel_factory(profile)
        service = QueryService(channel, settings, direct_server=profile.to_server())
        context = cls(channel, settings, query_service=service)
        service.resolver.resolve_direct()

        if profile.impersonate:
            try:
                context.impersonate(profile.impersonate)
            except ImpersonationFailedError:
                context.close()
                raise
        return context

    def impersonate(self, login: str) -> None:
        """
        Raises:
            ImpersonationFailedError: If the login lacks IMPERSONATE on ``login``
        """
        if not self.user_service.can_impersonate(login):
            raise ImpersonationFailedError(login)
        self.user_service.impersonate_user(login)

    def duplicate(self) -> DatabaseContext:
        """Independent session, copied chain, strategy re-derived from the RPC cache."""
        channel = self.channel.duplicate()
        service = self.query_service.clone(channel, fresh_strategy=True)
        context = DatabaseContext(channel, self.settings, query_service=service)

        principal = service.direct_server.impersonation_principal
        if principal:
            try:
                context.user_service.impersonate_user(principal)
            except ImpersonationFailedError:
                context.close()
                raise

        logger.debug("Duplicated context on a new channel")
        return context

    def share_channel(self) -> DatabaseContext:
        """Same session, independent chain and strategy copy; does not own the channel."""
        service = self.query_service.clone(self.channel, fresh_strategy=False)
        return DatabaseContext(self.channel, self.settings, query_service=service, owns_channel=False)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.owns_channel and self.channel.is_open:
            self.channel.close()

    def __enter__(self) -> DatabaseContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
