"""
Server descriptor and the textual hop grammar.

A hop is written ``name[:port][/principal][@database]``. Any part that
contains separator characters can be wrapped in brackets, with ``]]``
standing for a literal ``]``::

    SQL02
    SQL02:1434/webapp@appdb
    [SQL-02,prod]/[CORP\\svc_sql]@[app db]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from mssqlhop.domain.errors import ChainSpecificationError


DEFAULT_PORT = 1433

# SQL Server 2016 is major version 13
LEGACY_MAX_MAJOR_VERSION = 13

_VERSION_PATTERN = re.compile(r"\b(\d{1,2})\.\d+\.\d+(?:\.\d+)?\b")
_NEEDS_BRACKETS = re.compile(r"[,:/@\[\]\s]")


@dataclass
class Server:
    """
    One hop of a server chain (or the directly connected host).

    ``alias`` is the name the predecessor knows this hop by and is the only
    name used when building routed statements. ``hostname`` is descriptive:
    it starts out equal to the alias and is replaced by the self-reported
    name once the execution context has been resolved.
    """

    hostname: str
    port: int | None = None
    alias: str | None = None
    impersonation_principal: str | None = None
    database: str | None = None
    product_version: str | None = None

    @property
    def routing_name(self) -> str:
        """Name used in OPENQUERY / EXEC AT targets."""
        return self.alias or self.hostname

    @property
    def major_version(self) -> int | None:
        if not self.product_version:
            return None
        match = _VERSION_PATTERN.search(self.product_version)
        return int(match.group(1)) if match else None

    @property
    def is_legacy(self) -> bool:
        """True for SQL Server 2016 and earlier."""
        major = self.major_version
        return major is not None and major <= LEGACY_MAX_MAJOR_VERSION

    @property
    def is_cloud_hosted(self) -> bool:
        """True for Azure SQL Database (PaaS); Managed Instance is not."""
        version = (self.product_version or "").lower()
        return "microsoft sql azure" in version and "managed instance" not in version

    @property
    def connect_port(self) -> int:
        return self.port or DEFAULT_PORT

    def copy(self) -> Server:
        return replace(self)

    def to_argument(self) -> str:
        """Render back to the hop grammar accepted by :meth:`parse`."""
        parts = [_bracket(self.routing_name)]
        if self.port is not None:
            parts.append(f":{self.port}")
        if self.impersonation_principal:
            parts.append(f"/{_bracket(self.impersonation_principal)}")
        if self.database:
            parts.append(f"@{_bracket(self.database)}")
        return "".join(parts)

    def __str__(self) -> str:
        user_part = f" ({self.impersonation_principal})" if self.impersonation_principal else ""
        return f"{self.hostname}:{self.connect_port}{user_part}"

    @classmethod
    def parse(cls, text: str) -> Server:
        """
        Parse a single hop specification.

        Raises:
            ChainSpecificationError: On empty names, bad ports, unterminated
                brackets or trailing characters.
        """
        if text is None or not text.strip():
            raise ChainSpecificationError("Server specification cannot be empty.")

        text = text.strip()
        name, pos = _read_token(text, 0, ":/@")
        if not name:
            raise ChainSpecificationError(f"Missing server name in '{text}'.")

        port = None
        principal = None
        database = None

        if pos < len(text) and text[pos] == ":":
            raw_port, pos = _read_token(text, pos + 1, "/@")
            port = _parse_port(raw_port, text)

        if pos < len(text) and text[pos] == "/":
            principal, pos = _read_token(text, pos + 1, "@")
            if not principal:
                raise ChainSpecificationError(f"Empty impersonation principal in '{text}'.")

        if pos < len(text) and text[pos] == "@":
            database, pos = _read_token(text, pos + 1, "")
            if not database:
                raise ChainSpecificationError(f"Empty database name in '{text}'.")

        if pos != len(text):
            raise ChainSpecificationError(
                f"Unexpected character '{text[pos]}' at position {pos} in '{text}'."
            )

        return cls(
            hostname=name,
            port=port,
            alias=name,
            impersonation_principal=principal,
            database=database,
        )


def split_outside_brackets(text: str, separator: str = ",") -> list[str]:
    """Split on ``separator`` while leaving bracketed names intact."""
    parts: list[str] = []
    current: list[str] = []
    pos = 0
    while pos < len(text):
        char = text[pos]
        if char == "[":
            end = _closing_bracket(text, pos)
            current.append(text[pos:end + 1])
            pos = end + 1
            continue
        if char == separator:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        pos += 1
    parts.append("".join(current))
    return parts


def _read_token(text: str, pos: int, stops: str) -> tuple[str, int]:
    if pos < len(text) and text[pos] == "[":
        end = _closing_bracket(text, pos)
        return text[pos + 1:end].replace("]]", "]"), end + 1

    start = pos
    while pos < len(text) and text[pos] not in stops:
        if text[pos] in "[]":
            raise ChainSpecificationError(
                f"Unexpected bracket at position {pos} in '{text}'; "
                "wrap the whole name in brackets."
            )
        pos += 1
    return text[start:pos].strip(), pos


def _closing_bracket(text: str, start: int) -> int:
    pos = start + 1
    while pos < len(text):
        if text[pos] == "]":
            if pos + 1 < len(text) and text[pos + 1] == "]":
                pos += 2
                continue
            return pos
        pos += 1
    raise ChainSpecificationError(f"Unterminated bracket in '{text}'.")


def _parse_port(raw_port: str, text: str) -> int:
    if not raw_port.isdigit():
        raise ChainSpecificationError(f"Invalid port '{raw_port}' in '{text}'.")
    port = int(raw_port)
    if port < 1 or port > 65535:
        raise ChainSpecificationError(f"Port must be between 1 and 65535 (got {port}).")
    return port


def _bracket(value: str) -> str:
    if _NEEDS_BRACKETS.search(value):
        return "[" + value.replace("]", "]]") + "]"
    return value
