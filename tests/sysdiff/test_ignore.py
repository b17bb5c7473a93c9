# Copyright Red Hat
#
# tests/sysdiff/test_ignore.py - Ignore rule tests.
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
from unittest.mock import patch
import tempfile
import os

from debdiff import DebdiffIgnoreError
from debdiff.sysdiff.ignore import (
    GlobRule,
    IgnoreRules,
    LiteralRule,
    is_glob,
    load_ignore_rules,
    make_rule,
    parse_rules,
)

from tests import make_tree


class TestIgnoreRule(unittest.TestCase):
    def test_literal_rule_matches_path_and_subtree(self):
        rule = make_rule("/etc/foo")
        self.assertIsInstance(rule, LiteralRule)
        self.assertTrue(rule.match("/etc/foo"))
        self.assertTrue(rule.match("/etc/foo/bar"))
        self.assertTrue(rule.match("/etc/foo/bar/baz"))

    def test_literal_rule_is_not_a_string_prefix(self):
        rule = make_rule("/etc/foo")
        self.assertFalse(rule.match("/etc/foobar"))
        self.assertFalse(rule.match("/etc/fo"))
        self.assertFalse(rule.match("/etc"))

    def test_glob_rule_matches_any_depth(self):
        rule = make_rule("*.bak")
        self.assertIsInstance(rule, GlobRule)
        self.assertTrue(rule.match("/home/user/x.bak"))
        self.assertTrue(rule.match("/x.bak"))
        self.assertFalse(rule.match("/home/user/x.bak.orig"))

    def test_glob_rule_star_crosses_separators(self):
        rule = make_rule("/var/cache/*")
        self.assertTrue(rule.match("/var/cache/apt/archives/x.deb"))
        self.assertFalse(rule.match("/var/cache"))

    def test_glob_rule_question_and_class(self):
        self.assertTrue(make_rule("/tmp/?.log").match("/tmp/a.log"))
        self.assertFalse(make_rule("/tmp/?.log").match("/tmp/ab.log"))
        self.assertTrue(make_rule("/dev/tty[0-9]").match("/dev/tty3"))
        self.assertFalse(make_rule("/dev/tty[!0-9]").match("/dev/tty3"))

    def test_glob_rule_leading_close_bracket(self):
        rule = make_rule("/x/[]]")
        self.assertTrue(rule.match("/x/]"))

    def test_invalid_glob_raises(self):
        with self.assertRaises(DebdiffIgnoreError) as cm:
            make_rule("/etc/[abc")
        self.assertIn("invalid glob pattern '/etc/[abc'", str(cm.exception))

    def test_brace_alternation_rejected(self):
        with self.assertRaises(DebdiffIgnoreError) as cm:
            make_rule("/etc/{foo,bar}*")
        self.assertIn("unsupported glob syntax '{'", str(cm.exception))

    def test_backslash_escape_rejected(self):
        with self.assertRaises(DebdiffIgnoreError) as cm:
            make_rule("/etc/\\*.conf")
        self.assertIn("unsupported glob syntax '\\'", str(cm.exception))

    def test_brace_in_literal_rule(self):
        rule = make_rule("/etc/{foo}")
        self.assertIsInstance(rule, LiteralRule)
        self.assertTrue(rule.match("/etc/{foo}/bar"))

    def test_is_glob(self):
        self.assertTrue(is_glob("*.bak"))
        self.assertTrue(is_glob("/a?"))
        self.assertTrue(is_glob("/a[b]"))
        self.assertFalse(is_glob("/etc/foo"))

    def test_rule_equality(self):
        self.assertEqual(make_rule("/etc/foo"), LiteralRule("/etc/foo"))
        self.assertNotEqual(make_rule("*.bak"), LiteralRule("*.bak"))
        self.assertEqual(len({make_rule("/a"), make_rule("/a")}), 1)
        self.assertEqual(repr(make_rule("/a")), "LiteralRule('/a')")


class TestIgnoreRules(unittest.TestCase):
    def test_empty_rules_ignore_nothing(self):
        rules = IgnoreRules()
        self.assertFalse(rules)
        self.assertEqual(len(rules), 0)
        self.assertFalse(rules.is_ignored("/etc/passwd"))

    def test_any_rule_matches(self):
        rules = IgnoreRules([make_rule("/var/log"), make_rule("*.bak")])
        self.assertTrue(rules.is_ignored("/var/log/syslog"))
        self.assertTrue(rules.is_ignored("/root/x.bak"))
        self.assertFalse(rules.is_ignored("/etc/hosts"))

    def test_parse_rules_skips_comments_and_blank_lines(self):
        lines = ["# comment\n", "\n", "/var/log\n", "*.bak\n", "  \n"]
        rules = parse_rules(lines)
        self.assertEqual(
            rules, [LiteralRule("/var/log"), GlobRule("*.bak"), LiteralRule("  ")]
        )

    def test_parse_rules_strips_line_ending_only(self):
        rules = parse_rules(["/etc/x\r\n", "/a\rb\n", "/etc/f\x0cg\n", "/last"])
        self.assertEqual(
            rules,
            [
                LiteralRule("/etc/x"),
                LiteralRule("/a\rb"),
                LiteralRule("/etc/f\x0cg"),
                LiteralRule("/last"),
            ],
        )


class TestLoadIgnoreRules(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.ignore_dir = tmpdir.name

    def test_no_ignore_dir(self):
        self.assertFalse(load_ignore_rules(None))
        self.assertFalse(load_ignore_rules(""))

    def test_empty_ignore_dir(self):
        self.assertFalse(load_ignore_rules(self.ignore_dir))

    def test_rule_file_split_on_newline_only(self):
        make_tree(
            self.ignore_dir, {"/crlf": b"/etc/a\x0cb\r\n/var/log\r\n/c\rd\n"}
        )
        self.assertEqual(
            list(load_ignore_rules(self.ignore_dir)),
            [
                LiteralRule("/etc/a\x0cb"),
                LiteralRule("/var/log"),
                LiteralRule("/c\rd"),
            ],
        )

    def test_load_nested_rule_files(self):
        make_tree(
            self.ignore_dir,
            {
                "/base": "# system\n/var/log\n/proc\n",
                "/extra/backups": "*.bak\n\n*~\n",
            },
        )
        rules = load_ignore_rules(self.ignore_dir)
        self.assertEqual(len(rules), 4)
        self.assertEqual(
            list(rules),
            [
                LiteralRule("/var/log"),
                LiteralRule("/proc"),
                GlobRule("*.bak"),
                GlobRule("*~"),
            ],
        )
        self.assertTrue(rules.is_ignored("/var/log/syslog"))
        self.assertTrue(rules.is_ignored("/etc/hosts~"))

    def test_missing_ignore_dir(self):
        missing = os.path.join(self.ignore_dir, "missing")
        with self.assertRaises(DebdiffIgnoreError) as cm:
            load_ignore_rules(missing)
        self.assertIn("walking ignore directory", str(cm.exception))

    def test_ignore_dir_is_a_file(self):
        make_tree(self.ignore_dir, {"/file": "/etc\n"})
        with self.assertRaises(DebdiffIgnoreError):
            load_ignore_rules(os.path.join(self.ignore_dir, "file"))

    def test_invalid_glob_in_file(self):
        make_tree(self.ignore_dir, {"/rules": "/etc/[abc\n"})
        with self.assertRaises(DebdiffIgnoreError) as cm:
            load_ignore_rules(self.ignore_dir)
        self.assertIn("invalid glob pattern", str(cm.exception))

    def test_unreadable_rule_file(self):
        make_tree(self.ignore_dir, {"/rules": "/etc\n"})
        with patch("builtins.open", side_effect=PermissionError(13, "Permission denied")):
            with self.assertRaises(DebdiffIgnoreError) as cm:
                load_ignore_rules(self.ignore_dir)
        self.assertIn("reading ignore file", str(cm.exception))

    def test_walk_error_is_fatal(self):
        def failing_walk(top, onerror=None):
            onerror(PermissionError(13, "Permission denied", top))
            return iter(())

        with patch("debdiff.sysdiff.ignore.os.walk", side_effect=failing_walk):
            with self.assertRaises(DebdiffIgnoreError) as cm:
                load_ignore_rules(self.ignore_dir)
        self.assertIn("walking ignore directory", str(cm.exception))
