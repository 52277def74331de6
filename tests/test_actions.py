"""
Tests for the action registry and the individual actions.
"""

import pytest

from conftest import rows
from mssqlhop.application.actions import ACTIONS, available_actions, get_action
from mssqlhop.application.actions.info import INFO_QUERIES
from mssqlhop.application.actions.links import LINKS_QUERY
from mssqlhop.application.database_context import DatabaseContext
from mssqlhop.domain.errors import (
    ActionNotFoundError,
    ChannelError,
    MissingRequiredArgumentError,
    RpcRequiredError,
    UnknownConfigurationOptionError,
)


@pytest.fixture
def context(channel, settings, service):
    return DatabaseContext(channel, settings, query_service=service)


class TestRegistry:
    def test_all_actions_registered(self):
        assert set(ACTIONS) == {
            "info", "whoami", "query", "links", "impersonate", "databases", "rpc", "config", "xpcmd",
        }

    def test_lookup_is_case_insensitive(self):
        assert get_action("WHOAMI").name == "whoami"

    def test_unknown_action(self):
        with pytest.raises(ActionNotFoundError) as excinfo:
            get_action("nope")
        assert str(excinfo.value) == "Action 'nope' not found"

    def test_arguments_validated(self):
        with pytest.raises(MissingRequiredArgumentError):
            get_action("query")
        with pytest.raises(MissingRequiredArgumentError):
            get_action("info", ["extra"])
        with pytest.raises(MissingRequiredArgumentError):
            get_action("rpc", ["toggle", "SQL02"])
        with pytest.raises(MissingRequiredArgumentError):
            get_action("config", ["xp_cmdshell", "on"])

    def test_available_actions_listing(self):
        names = [name for name, _, _ in available_actions()]
        assert "query" in names
        assert all(description for _, _, description in available_actions())


class TestQueryAction:
    def test_select_returns_rows(self, context, channel):
        channel.script(rows(["name"], ("master",), ("appdb",)))
        result = get_action("query", ["SELECT", "name", "FROM", "sys.databases"]).execute(context)
        assert result.column("NAME") == ["master", "appdb"]
        assert channel.statements == ["SELECT name FROM sys.databases"]

    def test_dml_returns_affected_rows(self, context, channel):
        channel.script(3)
        result = get_action("query", ["UPDATE t SET a = 1"]).execute(context)
        assert result.columns == ["Rows Affected"]
        assert result.first_value() == 3


class TestInfoAction:
    def test_collects_every_property(self, context, channel):
        result = get_action("info").execute(context)
        assert result.columns == ["Property", "Value"]
        labels = [row[0] for row in result.rows]
        assert labels[: len(INFO_QUERIES)] == list(INFO_QUERIES)
        assert len(channel.calls) == len(INFO_QUERIES)

    def test_failing_property_reported_not_raised(self, context, channel):
        channel.script(ChannelError("Invalid object name"), "SQL01")
        result = get_action("info").execute(context)
        assert result.rows[0] == ("Server Name", "N/A")
        assert result.rows[1] == ("Host Name", "SQL01")


class TestWhoamiAction:
    def test_reports_login_user_and_roles(self, context, channel):
        def handler(statement, shape):
            if "USER_NAME()" in statement:
                return rows(["User", "Login"], ("dbo", "CORP\\alice"))
            if "'sysadmin'" in statement or "'dbcreator'" in statement:
                return 1
            return 0

        channel.handler = handler
        result = get_action("whoami").execute(context)
        values = dict(result.rows)
        assert values["Logged-in As"] == "CORP\\alice"
        assert values["Mapped To User"] == "dbo"
        assert values["Server Roles"] == "sysadmin, dbcreator"


class TestLinksAction:
    def test_lists_links(self, context, channel, service):
        service.execution_server.product_version = "Microsoft SQL Server 2019 - 15.0.2000.5"
        channel.script(rows(["Link", "RPC Out"], ("SQL02", True)))
        result = get_action("links").execute(context)
        assert result.first_value() == "SQL02"
        assert channel.statements == [LINKS_QUERY]

    def test_refused_on_azure_sql_database(self, context, channel, service):
        service.execution_server.product_version = "Microsoft SQL Azure (RTM) - 12.0.2000.8"
        result = get_action("links").execute(context)
        assert result.is_empty
        assert channel.calls == []


class TestImpersonateAction:
    def test_lists_grants(self, context, channel):
        channel.script(rows(["Login", "Type"], ("sa", "SQL_LOGIN")))
        result = get_action("impersonate").execute(context)
        assert result.first_value() == "sa"
        assert "IMPERSONATE" in channel.statements[0]

    def test_checks_single_login(self, context, channel):
        channel.script(0, 1)  # not sysadmin, grant present
        result = get_action("impersonate", ["sa"]).execute(context)
        assert result.rows == [("sa", True)]
        assert "b.name = 'sa'" in channel.statements[1]


class TestDatabasesAction:
    def test_lists_databases(self, context, channel):
        channel.script(rows(["Name"], ("master",)))
        assert get_action("databases").execute(context).first_value() == "master"
        assert "sys.databases" in channel.statements[0]


class TestRpcAction:
    def test_enable(self, context, channel):
        result = get_action("rpc", ["enable", "SQL02"]).execute(context)
        assert channel.statements == [
            "EXEC sp_serveroption @server = 'SQL02', @optname = 'rpc out', @optvalue = 'true';"
        ]
        assert result.rows == [("SQL02", "true")]

    def test_disable_quotes_name(self, context, channel):
        get_action("rpc", ["DISABLE", "O'Link"]).execute(context)
        assert "@server = 'O''Link'" in channel.statements[0]
        assert "@optvalue = 'false'" in channel.statements[0]


class TestConfigAction:
    def test_lists_security_options(self, context, channel):
        channel.script(rows(["name", "value_in_use"], ("xp_cmdshell", 1)))
        result = get_action("config").execute(context)
        assert result.rows[0][:2] == ("xp_cmdshell", True)

    def test_shows_one_option(self, context, channel):
        channel.script(0)
        result = get_action("config", ["xp_cmdshell"]).execute(context)
        assert result.rows == [("xp_cmdshell", 0)]

    def test_unknown_option(self, context, channel):
        channel.script(None)
        with pytest.raises(UnknownConfigurationOptionError):
            get_action("config", ["bogus"]).execute(context)

    def test_enable_through_rpc_chain(self, context, channel, service):
        service.set_linked_servers("SQL02")
        channel.reset()
        channel.script(1, 0)
        result = get_action("config", ["xp_cmdshell", "1"]).execute(context)
        assert result.rows == [("xp_cmdshell", 1)]
        assert "sp_configure ''xp_cmdshell'', 1" in channel.statements[-1]

    def test_enable_refused_through_openquery_only_chain(self, context, channel, service):
        service.set_linked_servers("SQL02")
        service.use_remote_procedure_call = False
        channel.reset()
        channel.script(1, 0)
        with pytest.raises(RpcRequiredError):
            get_action("config", ["xp_cmdshell", "1"]).execute(context)
        assert not any("sp_configure" in s for s in channel.statements)


class TestXpCmdAction:
    def test_output_lines(self, context, channel):
        channel.script(rows(["output"], ("nt service\\mssqlserver",), (None,)))
        result = get_action("xpcmd", ["whoami"]).execute(context)
        assert result.rows == [("nt service\\mssqlserver",)]
        assert channel.statements == ["EXEC master..xp_cmdshell 'whoami';"]

    def test_refused_through_openquery_only_chain(self, context, channel, service):
        service.set_linked_servers("SQL02")
        service.use_remote_procedure_call = False
        channel.reset()
        with pytest.raises(RpcRequiredError):
            get_action("xpcmd", ["whoami"]).execute(context)
        assert channel.calls == []
