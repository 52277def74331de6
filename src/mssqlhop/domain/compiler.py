"""
Linked server statement compiler.

Pure functions that route a statement through a chain of linked servers.
Inputs are the derived arrays of a :class:`LinkedServers` chain:

- ``server_names``: ``["0", "SQL02", "SQL03", ...]`` where ``"0"`` stands
  for the direct connection
- ``impersonations`` / ``databases``: one entry per hop, ``""`` when unset

Two forms are produced:

``EXEC ('...') AT [hop]`` (RPC)
    Built right to left. Each hop re-encodes the accumulated statement into
    a fresh string literal, so quotes are doubled once per hop.

``SELECT * FROM OPENQUERY([hop], '...')``
    Built left to right by recursion. Each nesting level sits inside one
    more string literal, so the quote run at depth ``d`` is ``2 ** d`` long.
"""

from __future__ import annotations

from typing import Sequence


DEFAULT_DATABASE = "master"


def terminate(statement: str) -> str:
    """Strip trailing terminators and whitespace, then add exactly one ``;``."""
    return statement.rstrip().rstrip(";").rstrip() + ";"


def quote_identifier(name: str) -> str:
    """``name`` -> ``[name]`` with ``]`` doubled."""
    return "[" + name.replace("]", "]]") + "]"


def quote_literal(value: str) -> str:
    """``value`` -> ``'value'`` with ``'`` doubled."""
    return "'" + value.replace("'", "''") + "'"


def context_prefix(principal: str | None, database: str | None) -> str:
    """
    Context switch statements to run on a hop before the routed statement.

    ``USE [master]`` is omitted: it is where linked server logins land anyway.
    """
    prefix = ""
    if principal:
        prefix += f"EXECUTE AS LOGIN = {quote_literal(principal)}; "
    if database and database.lower() != DEFAULT_DATABASE:
        prefix += f"USE {quote_identifier(database)}; "
    return prefix


def build_remote_procedure_call_chain(
    server_names: Sequence[str],
    statement: str,
    impersonations: Sequence[str] | None = None,
    databases: Sequence[str] | None = None,
) -> str:
    """
    Wrap ``statement`` in one ``EXEC (...) AT [hop]`` per hop.

    Iterates from the last hop to the first, skipping the ``"0"`` sentinel,
    so the outermost wrapper targets the first hop. Each pass walks the whole
    accumulated string once.
    """
    if not server_names:
        raise ValueError("server_names cannot be empty.")

    impersonations = impersonations or []
    databases = databases or []
    current = statement

    for index in range(len(server_names) - 1, 0, -1):
        principal = impersonations[index - 1] if index - 1 < len(impersonations) else ""
        database = databases[index - 1] if index - 1 < len(databases) else ""
        body = context_prefix(principal, database) + terminate(current)
        current = f"EXEC ({quote_literal(body)}) AT {quote_identifier(server_names[index])}"

    return current


def build_select_openquery_chain(
    server_names: Sequence[str],
    statement: str,
    impersonations: Sequence[str] | None = None,
    databases: Sequence[str] | None = None,
    depth: int = 0,
) -> str:
    """
    Nest ``statement`` inside one ``OPENQUERY`` per hop.

    Args:
        server_names: Remaining routing names, sentinel first on the
            initial call
        statement: Statement to run on the final hop
        impersonations: Remaining per-hop logins
        databases: Remaining per-hop databases
        depth: Nesting level; quotes at this level are ``2 ** depth`` long

    Raises:
        ValueError: If ``server_names`` is empty
    """
    if not server_names:
        raise ValueError("server_names cannot be empty.")

    impersonations = list(impersonations or [])
    databases = list(databases or [])

    principal = impersonations.pop(0) if impersonations else ""
    database = databases.pop(0) if databases else ""

    ticks = "'" * (2 ** depth)

    if len(server_names) == 1:
        base = context_prefix(principal, database) + terminate(statement)
        return base.replace("'", ticks)

    inner_ticks = "'" * (2 ** (depth + 1))
    prefix = context_prefix(principal, database).replace("'", inner_ticks)

    nested = build_select_openquery_chain(
        server_names[1:],
        statement,
        impersonations=impersonations,
        databases=databases,
        depth=depth + 1,
    )

    return (
        f"SELECT * FROM OPENQUERY({quote_identifier(server_names[1])}, "
        f"{ticks}{prefix}{nested}{ticks})"
    )
