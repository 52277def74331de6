"""
Shared fixtures: a scripted in-memory channel and engine factories.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parents[1] / "src"))

import pytest

from mssqlhop.application.query_service import QueryService
from mssqlhop.domain.models import QueryResult
from mssqlhop.domain.server import Server
from mssqlhop.infrastructure.config_loader import EngineSettings
from mssqlhop.infrastructure.sql.channel import ResultShape


class FakeChannel:
    """
    Channel double.

    Responses are consumed in order; an exception instance is raised instead
    of returned. A ``handler(statement, shape)`` takes over once the queue is
    empty. Without either, empty defaults are returned per shape.
    """

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []
        self.is_open = True
        self.closed_count = 0
        self.duplicates = []

    def script(self, *responses):
        self.responses.extend(responses)
        return self

    def reset(self):
        self.calls.clear()

    @property
    def statements(self):
        return [statement for statement, _, _ in self.calls]

    @property
    def timeouts(self):
        return [timeout for _, _, timeout in self.calls]

    def execute(self, statement, shape, timeout):
        self.calls.append((statement, shape, timeout))
        if self.responses:
            response = self.responses.pop(0)
        elif self.handler is not None:
            response = self.handler(statement, shape)
        else:
            response = _default(shape)
        if isinstance(response, BaseException):
            raise response
        return response

    def duplicate(self):
        twin = FakeChannel(handler=self.handler)
        self.duplicates.append(twin)
        return twin

    def close(self):
        self.is_open = False
        self.closed_count += 1

    @property
    def database(self):
        return "master"

    @property
    def server_version(self):
        return "Microsoft SQL Server 2019 (RTM) - 15.0.2000.5 (X64)"


def _default(shape):
    if shape is ResultShape.ROWS:
        return QueryResult()
    if shape is ResultShape.AFFECTED:
        return 0
    return None


def rows(columns, *values):
    """QueryResult shorthand: rows(["a", "b"], (1, 2), (3, 4))."""
    return QueryResult(columns=list(columns), rows=[tuple(row) for row in values])


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def service(channel, settings):
    return QueryService(channel, settings, direct_server=Server(hostname="SQL01"))


@pytest.fixture
def routed_service(service, channel):
    """Engine with ``SQL02,SQL03`` attached and the resolver's calls cleared."""
    service.set_linked_servers("SQL02,SQL03")
    channel.reset()
    return service
