"""
Tests for the linked server statement compiler.
"""

import re
import unittest

from mssqlhop.domain.compiler import (
    build_remote_procedure_call_chain,
    build_select_openquery_chain,
    context_prefix,
    quote_identifier,
    quote_literal,
    terminate,
)


class TestHelpers(unittest.TestCase):
    def test_terminate_normalizes(self):
        self.assertEqual(terminate("SELECT 1"), "SELECT 1;")
        self.assertEqual(terminate("SELECT 1;"), "SELECT 1;")
        self.assertEqual(terminate("SELECT 1;;  \n"), "SELECT 1;")
        self.assertEqual(terminate("SELECT 1 ; "), "SELECT 1;")

    def test_quote_identifier(self):
        self.assertEqual(quote_identifier("SQL02"), "[SQL02]")
        self.assertEqual(quote_identifier("a]b"), "[a]]b]")

    def test_quote_literal(self):
        self.assertEqual(quote_literal("it's"), "'it''s'")

    def test_context_prefix(self):
        self.assertEqual(context_prefix("", ""), "")
        self.assertEqual(context_prefix(None, None), "")
        self.assertEqual(context_prefix("sa", ""), "EXECUTE AS LOGIN = 'sa'; ")
        self.assertEqual(context_prefix("", "appdb"), "USE [appdb]; ")
        self.assertEqual(
            context_prefix("o'brien", "app]db"),
            "EXECUTE AS LOGIN = 'o''brien'; USE [app]]db]; ",
        )

    def test_context_prefix_skips_master(self):
        self.assertEqual(context_prefix("", "master"), "")
        self.assertEqual(context_prefix("", "MASTER"), "")


class TestRemoteProcedureCallChain(unittest.TestCase):
    def test_direct_connection_returns_statement(self):
        self.assertEqual(build_remote_procedure_call_chain(["0"], "SELECT 1"), "SELECT 1")

    def test_single_hop(self):
        self.assertEqual(
            build_remote_procedure_call_chain(["0", "SQL02"], "SELECT 'a'"),
            "EXEC ('SELECT ''a'';') AT [SQL02]",
        )

    def test_impersonation_belongs_to_first_hop(self):
        compiled = build_remote_procedure_call_chain(
            ["0", "SQL02", "SQL03"], "SELECT 1;", impersonations=["webapp", ""], databases=["", ""]
        )
        self.assertEqual(
            compiled,
            "EXEC ('EXECUTE AS LOGIN = ''webapp''; EXEC (''SELECT 1;'') AT [SQL03];') AT [SQL02]",
        )
        self.assertTrue(compiled.endswith("AT [SQL02]"))

    def test_database_of_last_hop_is_innermost(self):
        compiled = build_remote_procedure_call_chain(
            ["0", "SQL02", "SQL03"], "SELECT 1", impersonations=["", ""], databases=["", "appdb"]
        )
        self.assertEqual(
            compiled,
            "EXEC ('EXEC (''USE [appdb]; SELECT 1;'') AT [SQL03];') AT [SQL02]",
        )

    def test_one_wrapper_per_hop_right_to_left(self):
        for hops in range(1, 6):
            names = ["0"] + [f"H{i}" for i in range(1, hops + 1)]
            compiled = build_remote_procedure_call_chain(names, "SELECT 1")
            self.assertEqual(compiled.count("EXEC ("), hops)
            targets = re.findall(r"AT \[(H\d+)\]", compiled)
            # Innermost wrapper first in the text, outermost last
            self.assertEqual(targets, list(reversed(names[1:])))

    def test_quotes_double_once_per_hop(self):
        compiled = build_remote_procedure_call_chain(["0", "A", "B", "C"], "SELECT 'x'")
        self.assertIn("SELECT " + "'" * 8 + "x" + "'" * 8 + ";", compiled)

    def test_empty_names_rejected(self):
        with self.assertRaises(ValueError):
            build_remote_procedure_call_chain([], "SELECT 1")


class TestSelectOpenQueryChain(unittest.TestCase):
    def test_single_hop_scenario(self):
        self.assertEqual(
            build_select_openquery_chain(["0", "SQL02"], "SELECT 1;"),
            "SELECT * FROM OPENQUERY([SQL02], 'SELECT 1;')",
        )

    def test_single_hop_doubles_quotes_once(self):
        self.assertEqual(
            build_select_openquery_chain(["0", "SQL02"], "SELECT 'a'"),
            "SELECT * FROM OPENQUERY([SQL02], 'SELECT ''a'';')",
        )

    def test_two_hops(self):
        self.assertEqual(
            build_select_openquery_chain(["0", "SQL02", "SQL03"], "SELECT 'a'"),
            "SELECT * FROM OPENQUERY([SQL02], "
            "'SELECT * FROM OPENQUERY([SQL03], ''SELECT ''''a'''';'')')",
        )

    def test_hop_context_runs_inside_its_openquery(self):
        compiled = build_select_openquery_chain(
            ["0", "SQL02", "SQL03"], "SELECT 1", impersonations=["webapp", ""], databases=["", ""]
        )
        self.assertEqual(
            compiled,
            "SELECT * FROM OPENQUERY([SQL02], "
            "'EXECUTE AS LOGIN = ''webapp''; "
            "SELECT * FROM OPENQUERY([SQL03], ''SELECT 1;'')')",
        )

    def test_last_hop_database_escaped_for_its_depth(self):
        compiled = build_select_openquery_chain(
            ["0", "SQL02", "SQL03"], "SELECT 1", impersonations=["", ""], databases=["", "appdb"]
        )
        self.assertEqual(
            compiled,
            "SELECT * FROM OPENQUERY([SQL02], "
            "'SELECT * FROM OPENQUERY([SQL03], ''USE [appdb]; SELECT 1;'')')",
        )

    def test_direct_connection_prefix_is_not_escaped(self):
        compiled = build_select_openquery_chain(["0"], "SELECT 1", impersonations=["sa"])
        self.assertEqual(compiled, "EXECUTE AS LOGIN = 'sa'; SELECT 1;")

    def test_quote_runs_grow_as_powers_of_two(self):
        for hops in range(2, 6):
            names = ["0"] + [f"H{i}" for i in range(1, hops + 1)]
            compiled = build_select_openquery_chain(names, "SELECT 1")
            for depth in range(hops):
                run = "'" * (2 ** depth)
                self.assertIn(f"OPENQUERY([H{depth + 1}], {run}", compiled)
                self.assertNotIn(f"OPENQUERY([H{depth + 1}], {run}'S", compiled)

    def test_innermost_statement_surrounded_by_quote_run(self):
        for hops in range(1, 6):
            names = ["0"] + [f"H{i}" for i in range(1, hops + 1)]
            compiled = build_select_openquery_chain(names, "SELECT 1")
            run = "'" * (2 ** (hops - 1))
            match = re.search(r"(?<!')('+)SELECT 1;('+)\)", compiled)
            self.assertIsNotNone(match)
            self.assertEqual(match.group(1), run)
            self.assertEqual(match.group(2), run)

    def test_openquery_count_matches_hops(self):
        for hops in range(1, 6):
            names = ["0"] + [f"H{i}" for i in range(1, hops + 1)]
            compiled = build_select_openquery_chain(names, "SELECT 1")
            self.assertEqual(compiled.count("OPENQUERY("), hops)

    def test_terminator_never_doubled(self):
        compiled = build_select_openquery_chain(["0", "A", "B"], "SELECT 1;;")
        self.assertNotIn(";;", compiled)
        compiled = build_remote_procedure_call_chain(["0", "A", "B"], "SELECT 1;;")
        self.assertNotIn(";;", compiled)

    def test_idempotent(self):
        names = ["0", "A", "B", "C"]
        kwargs = {"impersonations": ["x", "", "y"], "databases": ["", "db", ""]}
        first = build_select_openquery_chain(names, "SELECT 'v' FROM t", **kwargs)
        second = build_select_openquery_chain(names, "SELECT 'v' FROM t", **kwargs)
        self.assertEqual(first, second)
        self.assertEqual(
            build_remote_procedure_call_chain(names, "SELECT 1", **kwargs),
            build_remote_procedure_call_chain(names, "SELECT 1", **kwargs),
        )

    def test_input_lists_not_consumed(self):
        impersonations = ["x", "y"]
        build_select_openquery_chain(["0", "A", "B"], "SELECT 1", impersonations=impersonations)
        self.assertEqual(impersonations, ["x", "y"])

    def test_empty_names_rejected(self):
        with self.assertRaises(ValueError):
            build_select_openquery_chain([], "SELECT 1")


if __name__ == "__main__":
    unittest.main()
