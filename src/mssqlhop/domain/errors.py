"""
Exception hierarchy for mssqlhop.

Validation errors fail fast and are never retried. Routing refusals are
raised before any round trip. Channel errors carry the raw provider text
that the classifier in :mod:`mssqlhop.domain.classification` inspects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mssqlhop.domain.classification import ErrorKind


class MssqlHopError(Exception):
    """Base class for every error raised by mssqlhop."""


# =============================================================================
# Validation
# =============================================================================

class QueryValidationError(MssqlHopError, ValueError):
    """Statement rejected before execution (empty, blank)."""


class ChainSpecificationError(MssqlHopError, ValueError):
    """Malformed server / linked server chain specification."""


class MissingRequiredArgumentError(MssqlHopError, ValueError):
    """An action or credential type is missing a required argument."""


class ConfigurationError(MssqlHopError):
    """Configuration file missing, unreadable or invalid."""


class ActionNotFoundError(MssqlHopError, KeyError):
    """Unknown action name."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Action '{self.name}' not found"


class UnknownConfigurationOptionError(MssqlHopError, ValueError):
    """``sp_configure`` option missing from ``sys.configurations`` or not visible."""

    def __init__(self, option: str):
        super().__init__(f"Configuration option '{option}' not found or inaccessible")
        self.option = option


# =============================================================================
# Routing and execution
# =============================================================================

class RpcRequiredError(MssqlHopError):
    """
    Statement needs RPC (EXEC AT) but the chain is limited to OPENQUERY.

    Raised before anything is sent: executing a server-scoped command
    through OPENQUERY would route it to the wrong place.
    """

    def __init__(self, statement: str, message: str | None = None):
        super().__init__(
            message
            or "This query requires RPC (Remote Procedure Call) which is not "
            "available or disabled on the linked server."
        )
        self.statement = statement


class ChannelError(MssqlHopError):
    """Failure reported by the underlying database channel."""

    def __init__(
        self,
        message: str,
        sqlstate: str | None = None,
        native_error: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.sqlstate = sqlstate
        self.native_error = native_error


class QueryExecutionError(MssqlHopError):
    """Classified failure surfaced once recovery is exhausted or refused."""

    def __init__(self, message: str, kind: "ErrorKind", statement: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.statement = statement


class LinkedServerUnreachableError(MssqlHopError):
    """A hop in the linked server chain could not be reached."""

    def __init__(self, server: str, message: str):
        super().__init__(f"Cannot reach linked server '{server}': {message}")
        self.server = server


# =============================================================================
# Session
# =============================================================================

class AuthenticationFailedError(MssqlHopError):
    """The channel could not be opened with the supplied credentials."""


class ImpersonationFailedError(MssqlHopError):
    """The requested login cannot be impersonated."""

    def __init__(self, login: str):
        super().__init__(f"Cannot impersonate login: {login}")
        self.login = login
