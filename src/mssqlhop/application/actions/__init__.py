"""
Action registry.

Maps action names to their classes; :func:`get_action` returns a validated
instance ready to run against a database context.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple, Type

from mssqlhop.application.actions.base import BaseAction
from mssqlhop.application.actions.config import ConfigAction
from mssqlhop.application.actions.databases import DatabasesAction
from mssqlhop.application.actions.impersonate import ImpersonateAction
from mssqlhop.application.actions.info import InfoAction
from mssqlhop.application.actions.links import LinksAction
from mssqlhop.application.actions.query import QueryAction
from mssqlhop.application.actions.rpc import RpcAction
from mssqlhop.application.actions.whoami import WhoamiAction
from mssqlhop.application.actions.xpcmd import XpCmdAction
from mssqlhop.domain.errors import ActionNotFoundError

ACTIONS: Dict[str, Type[BaseAction]] = {
    action.name: action
    for action in (
        InfoAction,
        WhoamiAction,
        QueryAction,
        LinksAction,
        ImpersonateAction,
        DatabasesAction,
        RpcAction,
        ConfigAction,
        XpCmdAction,
    )
}


def get_action(name: str, args: Iterable[str] | None = None) -> BaseAction:
    """
    Raises:
        ActionNotFoundError: If no action has that name
        MissingRequiredArgumentError: If the arguments do not fit the action
    """
    action_class = ACTIONS.get(name.strip().lower())
    if action_class is None:
        raise ActionNotFoundError(name)
    action = action_class()
    action.validate_arguments(list(args or []))
    return action


def available_actions() -> List[Tuple[str, str, str]]:
    """(name, usage, description) for every registered action."""
    return [(name, cls.usage, cls.description) for name, cls in ACTIONS.items()]


__all__ = ["ACTIONS", "BaseAction", "available_actions", "get_action"]
