"""
ODBC channel.

Handles:
- ODBC driver detection and fallback
- Connection string building per credential type
- Per-statement timeouts
- Translation of pyodbc errors into ChannelError
"""

from __future__ import annotations

import logging
import struct
from typing import Any

import pyodbc

from mssqlhop.domain.errors import AuthenticationFailedError, ChannelError
from mssqlhop.domain.models import QueryResult
from mssqlhop.infrastructure.sql.channel import ResultShape
from mssqlhop.infrastructure.sql.connection_profile import AuthType, ConnectionProfile


logger = logging.getLogger(__name__)

# msodbcsql.h
SQL_COPT_SS_ACCESS_TOKEN = 1256

# Preferred drivers (newest first)
PREFERRED_DRIVERS = [
    "ODBC Driver 18 for SQL Server",
    "ODBC Driver 17 for SQL Server",
    "ODBC Driver 13 for SQL Server",
    "ODBC Driver 11 for SQL Server",
]

FALLBACK_DRIVERS = [
    "SQL Server Native Client 11.0",
    "SQL Server Native Client 10.0",
    "SQL Server",
]

# Invalid authorization specification
AUTHENTICATION_SQLSTATES = ("28000",)


def detect_odbc_driver() -> str:
    """
    Detect best available ODBC driver.

    Raises:
        ChannelError: If no suitable driver is installed
    """
    drivers = pyodbc.drivers()
    logger.debug("Available ODBC drivers: %s", drivers)

    for driver in PREFERRED_DRIVERS:
        if driver in drivers:
            logger.debug("Using ODBC driver: %s", driver)
            return driver

    for driver in FALLBACK_DRIVERS:
        if driver in drivers:
            logger.warning("Using fallback ODBC driver: %s", driver)
            return driver

    raise ChannelError("No SQL Server ODBC driver found. Please install ODBC Driver 17 or 18.")


def translate_error(error: pyodbc.Error) -> ChannelError:
    """``pyodbc.Error(sqlstate, message)`` -> :class:`ChannelError`."""
    args = error.args
    if len(args) >= 2:
        sqlstate, message = str(args[0]), str(args[1])
    else:
        sqlstate, message = None, str(error)
    return ChannelError(message, sqlstate=sqlstate)


def encode_access_token(token: str) -> bytes:
    """Pack a token the way SQL_COPT_SS_ACCESS_TOKEN expects (UTF-16-LE, length prefixed)."""
    token_bytes = token.encode("utf-16-le")
    return struct.pack(f"<I{len(token_bytes)}s", len(token_bytes), token_bytes)


class OdbcChannel:
    """
    pyodbc-backed :class:`~mssqlhop.infrastructure.sql.channel.Channel`.

    One instance is one server session. Statements run with autocommit so
    ``EXECUTE AS`` and ``USE`` persist for the lifetime of the session.
    """

    def __init__(self, profile: ConnectionProfile):
        self.profile = profile
        self._connection: pyodbc.Connection | None = None
        self._connection_string: str | None = None
        self._server_version: str | None = None

    @classmethod
    def open(cls, profile: ConnectionProfile) -> OdbcChannel:
        channel = cls(profile)
        channel.connect()
        return channel

    def build_connection_string(self) -> str:
        """Build the ODBC connection string (never logged: may hold a password)."""
        if self._connection_string:
            return self._connection_string

        profile = self.profile
        driver = profile.odbc_driver or detect_odbc_driver()

        parts = [
            f"DRIVER={{{driver}}}",
            f"SERVER={profile.server_address}",
            f"DATABASE={profile.database or 'master'}",
            f"Encrypt={'yes' if profile.encrypt else 'no'}",
            f"TrustServerCertificate={'yes' if profile.trust_server_certificate else 'no'}",
            "APP=mssqlhop",
        ]

        if profile.auth_type is AuthType.WINDOWS:
            parts.append("Trusted_Connection=yes")
        elif profile.auth_type is AuthType.ENTRAID:
            parts.append("Authentication=ActiveDirectoryPassword")
            parts.append(f"UID={profile.username}")
            parts.append(f"PWD={{{_escape_braces(profile.password)}}}")
        elif profile.auth_type is AuthType.LOCAL:
            parts.append(f"UID={profile.login}")
            parts.append(f"PWD={{{_escape_braces(profile.password)}}}")
        # TOKEN: credentials travel in attrs_before

        self._connection_string = ";".join(parts)
        logger.debug("Connection string built (credentials masked)")
        return self._connection_string

    def connect(self) -> None:
        """
        Raises:
            AuthenticationFailedError: If the server rejects the credentials
            ChannelError: On any other connection failure
        """
        self.profile.validate_credentials()
        conn_str = self.build_connection_string()

        options = {"autocommit": True, "timeout": self.profile.connect_timeout}
        if self.profile.auth_type is AuthType.TOKEN:
            options["attrs_before"] = {
                SQL_COPT_SS_ACCESS_TOKEN: encode_access_token(self.profile.access_token)
            }

        logger.info("Connecting to %s (auth=%s)", self.profile.server_address, self.profile.auth_type.value)
        try:
            self._connection = pyodbc.connect(conn_str, **options)
        except pyodbc.Error as e:
            error = translate_error(e)
            if error.sqlstate in AUTHENTICATION_SQLSTATES:
                raise AuthenticationFailedError(
                    f"Login failed on {self.profile.server_address}: {error.message}"
                ) from e
            raise error from e

    def execute(self, statement: str, shape: ResultShape, timeout: int) -> Any:
        """
        Run one batch and return the first result set in the requested shape.

        Raises:
            ChannelError: If the statement fails or the session is closed
        """
        if self._connection is None:
            raise ChannelError("Channel is not open")

        self._connection.timeout = timeout
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(statement)
                if shape is ResultShape.AFFECTED:
                    return cursor.rowcount
                result = self._first_result_set(cursor)
            finally:
                cursor.close()
        except pyodbc.Error as e:
            raise translate_error(e) from e

        logger.debug("Query returned %d rows, %d columns", len(result.rows), len(result.columns))
        if shape is ResultShape.SCALAR:
            return result.first_value()
        return result

    @staticmethod
    def _first_result_set(cursor) -> QueryResult:
        # Row-count-only results (SET, DECLARE, USE) have no description
        while cursor.description is None:
            if not cursor.nextset():
                return QueryResult()

        columns = [column[0] for column in cursor.description]
        rows = [tuple(row) for row in cursor.fetchall()]
        return QueryResult(columns=columns, rows=rows)

    def duplicate(self) -> OdbcChannel:
        """Open a new session with the same profile."""
        return OdbcChannel.open(self.profile)

    def close(self) -> None:
        if self._connection is not None:
            try:
                self._connection.close()
            except pyodbc.Error as e:
                logger.debug("Error while closing connection: %s", e)
            self._connection = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def database(self) -> str | None:
        if self._connection is None:
            return None
        return self.execute("SELECT DB_NAME();", ResultShape.SCALAR, self.profile.connect_timeout)

    @property
    def server_version(self) -> str | None:
        if self._server_version is None and self._connection is not None:
            self._server_version = self.execute(
                "SELECT @@VERSION;", ResultShape.SCALAR, self.profile.connect_timeout
            )
        return self._server_version

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"OdbcChannel({self.profile.server_address}, {state})"


def _escape_braces(value: str | None) -> str:
    return (value or "").replace("}", "}}")
