"""
Failure classification and statement heuristics.

Everything that matches on provider error text lives here, so the
execution engine only ever branches on :class:`ErrorKind`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from mssqlhop.domain.compiler import terminate
from mssqlhop.domain.errors import ChannelError


class ErrorKind(Enum):
    """What went wrong, as far as the retry logic is concerned."""

    TIMEOUT = "timeout"
    RPC_UNAVAILABLE = "rpc_unavailable"
    NO_ROWSET = "no_rowset"
    UNSUPPORTED_DB_PREFIX = "unsupported_db_prefix"
    LINK_UNREACHABLE = "link_unreachable"
    OTHER = "other"

    @property
    def is_retryable(self) -> bool:
        return self not in (ErrorKind.LINK_UNREACHABLE, ErrorKind.OTHER)


@dataclass(frozen=True)
class ClassifiedError:
    """Classifier output: kind, original text and an optional extracted detail."""

    kind: ErrorKind
    message: str
    detail: str | None = None


# =============================================================================
# Provider text patterns
# =============================================================================

TIMEOUT_SQLSTATES = ("HYT00", "HYT01")

# Only with linked server provider context: the same driver text without it
# describes the local ODBC session. Checked before TIMEOUT, where a linked
# server's "Login timeout expired" is a dead hop, not a slow query.
_LINK_UNREACHABLE_MARKERS = (
    "login timeout expired",
    "named pipes provider",
    "tcp provider",
    "network-related or instance-specific error",
    "cannot initialize the data source object",
    "unable to complete login process",
)
_LINK_PROVIDER_MARKERS = ("ole db provider", "for linked server")

_TIMEOUT_MARKERS = ("timeout expired", "query timeout", "execution timeout")
_RPC_MARKERS = ("not configured for rpc",)
_NO_ROWSET_MARKERS = ("metadata", "no columns", "deferred prepare")

_LINKED_SERVER_NAME = re.compile(r"linked server \"([^\"]+)\"", re.IGNORECASE)
_SERVER_NAME = re.compile(r"Server '([^']+)' is not configured for RPC", re.IGNORECASE)
_DB_REFERENCE = re.compile(
    r"Reference to database and/or server name in '(\[[^\]]+\]|[^'.]+)\.",
    re.IGNORECASE,
)
_TOO_MANY_PREFIXES = re.compile(
    r"The object name '(\[[^\]]+\]|[^'.]+)\..*?' contains more than the maximum number of prefixes",
    re.IGNORECASE,
)


def classify_error(error: ChannelError | BaseException | str) -> ClassifiedError:
    """Translate a channel failure into an :class:`ErrorKind`."""
    message = error if isinstance(error, str) else str(error)
    sqlstate = getattr(error, "sqlstate", None)
    lowered = message.lower()

    if _is_link_unreachable(lowered):
        match = _LINKED_SERVER_NAME.search(message)
        return ClassifiedError(ErrorKind.LINK_UNREACHABLE, message, match.group(1) if match else None)

    if sqlstate in TIMEOUT_SQLSTATES or any(marker in lowered for marker in _TIMEOUT_MARKERS):
        return ClassifiedError(ErrorKind.TIMEOUT, message)

    if any(marker in lowered for marker in _RPC_MARKERS):
        match = _SERVER_NAME.search(message)
        return ClassifiedError(ErrorKind.RPC_UNAVAILABLE, message, match.group(1) if match else None)

    match = _DB_REFERENCE.search(message) or _TOO_MANY_PREFIXES.search(message)
    if match:
        database = match.group(1).strip("[]")
        return ClassifiedError(ErrorKind.UNSUPPORTED_DB_PREFIX, message, database)

    if any(marker in lowered for marker in _NO_ROWSET_MARKERS):
        return ClassifiedError(ErrorKind.NO_ROWSET, message)

    return ClassifiedError(ErrorKind.OTHER, message)


def _is_link_unreachable(lowered: str) -> bool:
    # "OLE DB provider "MSOLEDBSQL" for linked server "SQL03" returned message "Login timeout expired"."
    return any(marker in lowered for marker in _LINK_PROVIDER_MARKERS) and any(
        marker in lowered for marker in _LINK_UNREACHABLE_MARKERS
    )


# =============================================================================
# Statement heuristics
# =============================================================================

RPC_REQUIRED_KEYWORDS = (
    "CREATE LOGIN",
    "ALTER LOGIN",
    "DROP LOGIN",
    "ALTER SERVER",
    "SP_CONFIGURE",
    "RECONFIGURE",
    "XP_",
    "CREATE ENDPOINT",
)


def requires_rpc(statement: str) -> bool:
    """
    True when the statement changes server-level state.

    Best-effort keyword match, not a parser: anything it misses fails on
    the destination instead of being refused locally.
    """
    upper = statement.upper()
    return any(keyword in upper for keyword in RPC_REQUIRED_KEYWORDS)


_LEADING_USE = re.compile(r"^\s*USE\s+(?:\[(?:[^\]]|\]\])*\]|[^\s;]+)\s*;", re.IGNORECASE)
_FROM_CLAUSE = re.compile(r"\bFROM\b", re.IGNORECASE)
_WRITE_KEYWORDS = re.compile(r"\b(?:INSERT|UPDATE|DELETE)\b", re.IGNORECASE)


def looks_like_data_select(statement: str) -> bool:
    """True for a plain ``SELECT ... FROM`` (leading ``USE`` statements skipped)."""
    remaining = statement
    while True:
        match = _LEADING_USE.match(remaining)
        if not match:
            break
        remaining = remaining[match.end():]

    remaining = remaining.strip()
    return (
        remaining.upper().startswith("SELECT")
        and bool(_FROM_CLAUSE.search(remaining))
        and not _WRITE_KEYWORDS.search(remaining)
    )


WRAP_RESULT_VARIABLE = "@mssqlhop_wrapped_result"
WRAP_ERROR_VARIABLE = "@mssqlhop_wrapped_error"
WRAP_COLUMNS = ("Result", "Error")


def wrap_for_openquery(statement: str) -> str:
    """
    Make any statement return exactly one row of ``Result`` / ``Error``.

    OPENQUERY needs a rowset; DDL, DML and procedure calls do not produce one.
    """
    return f"""DECLARE {WRAP_RESULT_VARIABLE} NVARCHAR(MAX);
DECLARE {WRAP_ERROR_VARIABLE} NVARCHAR(MAX);
BEGIN TRY
    {terminate(statement)}
    SET {WRAP_RESULT_VARIABLE} = CAST(@@ROWCOUNT AS NVARCHAR(MAX));
    SET {WRAP_ERROR_VARIABLE} = NULL;
END TRY
BEGIN CATCH
    SET {WRAP_RESULT_VARIABLE} = NULL;
    SET {WRAP_ERROR_VARIABLE} = ERROR_MESSAGE();
END CATCH;
SELECT {WRAP_RESULT_VARIABLE} AS Result, {WRAP_ERROR_VARIABLE} AS Error;"""


def is_wrapped(statement: str) -> bool:
    return WRAP_RESULT_VARIABLE in statement


def strip_database_prefix(statement: str, database: str) -> str:
    """
    Drop ``database.`` / ``[database].`` three-part name prefixes.

    ``master.sys.servers`` becomes ``sys.servers``, ``master..sysdatabases``
    becomes ``sysdatabases``.
    """
    escaped = re.escape(database)
    pattern = re.compile(
        rf"(?<![\w.\]])(?:\[{escaped}\]|{escaped})\.\.?(?=[\[\w#@])",
        re.IGNORECASE,
    )
    return pattern.sub("", statement)
