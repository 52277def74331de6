"""
Tests for the command-line interface.
"""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from conftest import FakeChannel, rows
from mssqlhop.domain.errors import ChannelError
from mssqlhop.interface.cli import main, parse_arguments
from mssqlhop.interface.cli_help import print_main_help


VERSION = "Microsoft SQL Server 2019 (RTM) - 15.0.2000.5 (X64)"


def handler(statement, shape):
    if "@@SERVERNAME, @@VERSION, DB_NAME()" in statement:
        return rows(["", "", ""], ("SQL01", VERSION, "master"))
    if "@@SERVERNAME, @@VERSION" in statement:
        return rows(["", ""], ("SQL03", VERSION))
    if "USER_NAME()" in statement:
        return rows(["User", "Login"], ("dbo", "sa"))
    if "IS_SRVROLEMEMBER('sysadmin')" in statement:
        return 1
    return None if shape.value != "rows" else rows(["n"], (1,))


@pytest.fixture
def opened():
    return []


@pytest.fixture
def factory(opened):
    def open_channel(profile):
        opened.append((profile, FakeChannel(handler=handler)))
        return opened[-1][1]
    return open_channel


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("mssqlhop.interface.cli.setup_logging"):
        yield


class TestParser:
    def test_action_and_arguments(self):
        args = parse_arguments(
            ["SQL01", "-c", "local", "-u", "sa", "-p", "x", "-l", "SQL02,SQL03", "query", "SELECT", "1"]
        )
        assert args.host == "SQL01"
        assert args.credentials == "local"
        assert args.links == "SQL02,SQL03"
        assert args.action == "query"
        assert args.arguments == ["SELECT", "1"]

    def test_default_action(self):
        args = parse_arguments(["SQL01", "-c", "windows"])
        assert args.action == "info"
        assert args.arguments == []

    def test_documented_invocation(self):
        args = parse_arguments(["SQL01", "-c", "local", "-u", "sa", "-p", "x", "whoami"])
        assert (args.host, args.credentials, args.username, args.password) == ("SQL01", "local", "sa", "x")
        assert args.action == "whoami"
        assert args.arguments == []

    def test_options_after_the_action(self):
        args = parse_arguments(["SQL01", "config", "xp_cmdshell", "1", "-c", "windows", "-o", "json"])
        assert args.action == "config"
        assert args.arguments == ["xp_cmdshell", "1"]
        assert args.credentials == "windows"
        assert args.output == "json"

    def test_credential_type_required(self):
        with pytest.raises(SystemExit):
            parse_arguments(["SQL01"])


class TestMain:
    @pytest.mark.parametrize("argv", [["--help"], ["-h"], []])
    def test_help(self, capsys, argv):
        assert main(argv) == 0
        output = capsys.readouterr().out
        assert "ACTIONS" in output
        assert "[:port][/login][@database]" in output

    def test_whoami_through_chain(self, factory, opened, capsys):
        code = main(
            ["SQL01", "-c", "windows", "-o", "json", "-l", "SQL02,SQL03", "whoami"],
            channel_factory=factory,
        )
        assert code == 0
        profile, channel = opened[0]
        assert profile.server == "SQL01"
        assert any("AT [SQL02]" in statement for statement in channel.statements)
        output = capsys.readouterr().out
        assert '"Value": "sa"' in output

    def test_host_modifiers_reach_profile(self, factory, opened):
        code = main(["SQL01:1434@appdb", "-c", "windows", "databases"], channel_factory=factory)
        assert code == 0
        profile, _ = opened[0]
        assert profile.port == 1434
        assert profile.database == "appdb"

    def test_missing_credentials_fail_before_connecting(self, factory, opened):
        assert main(["SQL01", "-c", "local", "-u", "sa", "info"], channel_factory=factory) == 1
        assert opened == []

    def test_unknown_action(self, factory, opened):
        assert main(["SQL01", "-c", "windows", "bogus"], channel_factory=factory) == 1
        assert opened == []

    def test_bad_chain(self, factory):
        assert main(["SQL01", "-c", "windows", "-l", "SQL02,,SQL03", "info"], channel_factory=factory) == 1

    def test_bad_host(self, factory, opened):
        assert main(["SQL01:99999", "-c", "windows"], channel_factory=factory) == 1
        assert opened == []

    def test_refusal_exit_code(self, factory):
        def wrap_only_factory(profile):
            channel = factory(profile)
            original = channel.handler

            def refuse_rpc(statement, shape):
                if statement.startswith("EXEC ("):
                    raise ChannelError("Server 'SQL02' is not configured for RPC.")
                return original(statement, shape)

            channel.handler = refuse_rpc
            return channel

        code = main(["SQL01", "-c", "windows", "-l", "SQL02", "xpcmd", "whoami"], channel_factory=wrap_only_factory)
        assert code == 1


def test_help_shows_action_usage_literally():
    buffer = io.StringIO()
    print_main_help(Console(file=buffer, width=200, color_system=None))
    output = buffer.getvalue()
    assert "[option] [0|1]" in output
    assert "[login]" in output
