#!/usr/bin/env python3
"""
Tests for rule_evaluator.py - enforcer rules and failure aggregation.

Test coverage:
- Every item is checked, failures collected in declaration order
- Null entry tolerance with and without allowNulls
- Configuration errors raised before any filesystem access
- Aggregated failure message with default and custom explanation
- Constant cache id for the glob rule
"""

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import rule_evaluator
from rule_config import (
    FilesContentConfig,
    GlobMatchesConfig,
    InvalidConfigurationError,
    MissingConfigurationError,
)
from rule_evaluator import (
    DEFAULT_FAILURE_MESSAGE,
    NULL_FILE_IDENTIFIER,
    RequireFilesContent,
    RequireGlobMatches,
    RuleFailure,
    build_rule,
    format_failure,
    report,
)


class TestReport(unittest.TestCase):
    """Test the outcome reporter."""

    def test_empty_report_is_silent(self):
        """Test an empty report returns without raising."""
        self.assertIsNone(report([]))
        self.assertIsNone(report([], "custom"))

    def test_failure_uses_default_explanation(self):
        """Test lines are joined and followed by the default explanation."""
        with self.assertRaises(RuleFailure) as ctx:
            report(["first : bad", "second : worse"])

        self.assertEqual(
            ctx.exception.message,
            "first : bad\nsecond : worse\n" + DEFAULT_FAILURE_MESSAGE
        )
        self.assertEqual(ctx.exception.lines, ["first : bad", "second : worse"])
        self.assertEqual(str(ctx.exception), ctx.exception.message)

    def test_failure_uses_custom_message(self):
        """Test a custom message replaces the default explanation."""
        with self.assertRaises(RuleFailure) as ctx:
            report(["only : bad"], "Fix the build.")

        self.assertEqual(ctx.exception.message, "only : bad\nFix the build.")

    def test_format_failure_with_empty_custom_message(self):
        """Test an empty custom message is still used instead of the default."""
        self.assertEqual(format_failure(["x"], ""), "x\n")


class TestRequireFilesContent(unittest.TestCase):
    """Test the require-files-content rule."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)
        self.a_txt = self.tmpdir / "a.txt"
        self.a_txt.write_text("hello\nworld\n")

    def tearDown(self):
        self._tmp.cleanup()

    def test_content_found(self):
        """Scenario 1: content on a line -> pass."""
        rule = RequireFilesContent(FilesContentConfig(files=[self.a_txt], content="wor"))

        self.assertEqual(rule.evaluate(), [])
        rule.execute()

    def test_content_missing(self):
        """Scenario 2: content absent -> one line with path and diagnostic."""
        rule = RequireFilesContent(FilesContentConfig(files=[self.a_txt], content="xyz"))

        self.assertEqual(rule.evaluate(), [f'{self.a_txt.absolute()} : Doesn\'t contain: "xyz"'])

    def test_all_items_checked_in_order(self):
        """Test k failing items of n give k lines in declaration order."""
        good = self.tmpdir / "good.txt"
        good.write_text("needle\n")
        bad_one = self.tmpdir / "bad1.txt"
        bad_one.write_text("hay\n")
        bad_two = self.tmpdir / "bad2.txt"
        bad_two.write_text("more hay\n")
        missing = self.tmpdir / "missing.txt"

        rule = RequireFilesContent(FilesContentConfig(
            files=[bad_two, good, missing, bad_one],
            content="needle",
        ))
        lines = rule.evaluate()

        self.assertEqual(lines, [
            f'{bad_two.absolute()} : Doesn\'t contain: "needle"',
            f"{missing.absolute()} : Not a file",
            f'{bad_one.absolute()} : Doesn\'t contain: "needle"',
        ])

    def test_unstatable_entry_does_not_abort_rule(self):
        """Test a path the filesystem rejects still lets later items be checked."""
        overlong = self.tmpdir / ("x" * 300)
        rule = RequireFilesContent(FilesContentConfig(files=[overlong, self.a_txt], content="zzz"))

        lines = rule.evaluate()

        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith(f"{overlong.absolute()} : "))
        self.assertEqual(lines[1], f'{self.a_txt.absolute()} : Doesn\'t contain: "zzz"')

    def test_stat_error_reported_per_item(self):
        """Test a permission error while checking a path gives the I/O diagnostic."""
        denied = self.tmpdir / "denied.txt"
        denied.write_text("zzz\n")
        real_is_file = Path.is_file

        def is_file(path):
            if path.name == "denied.txt":
                raise PermissionError(13, "Permission denied", str(path))
            return real_is_file(path)

        rule = RequireFilesContent(FilesContentConfig(files=[denied, self.a_txt], content="zzz"))
        with mock.patch.object(Path, "is_file", is_file):
            with self.assertLogs("rule_evaluator", level="ERROR"):
                lines = rule.evaluate()

        self.assertEqual(lines, [
            f"{denied.absolute()} : I/O error was raised, please check the log.",
            f'{self.a_txt.absolute()} : Doesn\'t contain: "zzz"',
        ])

    def test_relative_paths_reported_absolute(self):
        """Test report lines identify files by absolute path."""
        cwd = os.getcwd()
        os.chdir(self.tmpdir)
        try:
            expected = str(Path.cwd() / "a.txt")
            lines = RequireFilesContent(FilesContentConfig(files=["a.txt"], content="xyz")).evaluate()
        finally:
            os.chdir(cwd)

        self.assertEqual(lines, [f'{expected} : Doesn\'t contain: "xyz"'])

    def test_null_entry_allowed(self):
        """Test null entries never fail with allowNulls."""
        rule = RequireFilesContent(FilesContentConfig(
            files=[None, self.a_txt, ""],
            content="hello",
            allow_nulls=True,
        ))

        self.assertEqual(rule.evaluate(), [])

    def test_null_entry_disallowed(self):
        """Test null entries always fail without allowNulls."""
        rule = RequireFilesContent(FilesContentConfig(files=[None, self.a_txt], content="hello"))

        self.assertEqual(rule.evaluate(), [
            f"{NULL_FILE_IDENTIFIER} : Empty file name was given and allowNulls is set to false"
        ])

    def test_execute_raises_aggregated_failure(self):
        """Test execute surfaces every failure in one RuleFailure."""
        other = self.tmpdir / "b.txt"
        other.write_text("nothing\n")
        rule = RequireFilesContent(FilesContentConfig(
            files=[self.a_txt, other],
            content="xyz",
            message="Add xyz everywhere.",
        ))

        with self.assertRaises(RuleFailure) as ctx:
            rule.execute()

        self.assertEqual(len(ctx.exception.lines), 2)
        self.assertTrue(ctx.exception.message.endswith("\nAdd xyz everywhere."))
        self.assertNotIn(DEFAULT_FAILURE_MESSAGE, ctx.exception.message)

    def test_empty_files_rejected_before_io(self):
        """Test an empty file list fails without touching the filesystem."""
        rule = RequireFilesContent(FilesContentConfig(files=[], content="x"))

        with mock.patch.object(rule_evaluator, "check_file_content") as checker:
            with self.assertRaises(InvalidConfigurationError) as ctx:
                rule.execute()

        self.assertEqual(str(ctx.exception), "at least 1 file must be specified")
        checker.assert_not_called()

    def test_missing_content_rejected_before_io(self):
        """Test missing content is a configuration error, not a report line."""
        rule = RequireFilesContent(FilesContentConfig(files=[self.a_txt], content=None))

        with mock.patch.object(rule_evaluator, "check_file_content") as checker:
            with self.assertRaises(MissingConfigurationError):
                rule.evaluate()

        checker.assert_not_called()

    def test_logger_sink_used(self):
        """Test the rule logs to the logger it was given."""
        sink = logging.getLogger("test.sink")
        rule = RequireFilesContent(FilesContentConfig(files=[self.a_txt], content="hello"), log=sink)

        with self.assertLogs("test.sink", level="INFO") as logs:
            rule.evaluate()

        self.assertIn("Running rule require-files-content", logs.output[0])

    def test_content_rule_not_cacheable(self):
        rule = RequireFilesContent(FilesContentConfig(files=[self.a_txt], content="x"))
        self.assertIsNone(rule.cache_id)


class TestRequireGlobMatches(unittest.TestCase):
    """Test the require-glob-matches rule."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        (self.root / "sub").mkdir()
        (self.root / "sub" / "file.log").write_text("log\n")

    def tearDown(self):
        self._tmp.cleanup()

    def test_glob_matches(self):
        """Scenario 3: nested log file matches **/*.log -> pass."""
        rule = RequireGlobMatches(GlobMatchesConfig(globs=["**/*.log"], location=self.root))

        self.assertEqual(rule.evaluate(), [])
        rule.execute()

    def test_glob_without_match(self):
        """Scenario 4: no .cfg files -> one line naming glob and root."""
        rule = RequireGlobMatches(GlobMatchesConfig(globs=["**/*.cfg"], location=self.root))

        self.assertEqual(rule.evaluate(), [
            f"Could not find file matches with: **/*.cfg on location: {self.root}"
        ])

    def test_every_glob_checked(self):
        """Test failures for several globs are all reported in order."""
        rule = RequireGlobMatches(GlobMatchesConfig(
            globs=["*.cfg", "**/*.log", "docs/**", "[bad"],
            location=self.root,
        ))
        lines = rule.evaluate()

        self.assertEqual(len(lines), 3)
        self.assertIn("*.cfg", lines[0])
        self.assertIn("docs/**", lines[1])
        self.assertTrue(lines[2].startswith("Invalid glob pattern: [bad"))

    def test_null_glob_allowed(self):
        """Test absent globs pass with allowNulls and the rest are still checked."""
        rule = RequireGlobMatches(GlobMatchesConfig(
            globs=[None, "", "*.cfg"],
            location=self.root,
            allow_nulls=True,
        ))

        self.assertEqual(rule.evaluate(), [
            f"Could not find file matches with: *.cfg on location: {self.root}"
        ])

    def test_null_glob_disallowed(self):
        """Test an absent glob fails without allowNulls."""
        rule = RequireGlobMatches(GlobMatchesConfig(globs=[None, "*.cfg"], location=self.root))

        lines = rule.evaluate()

        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0], "Empty glob was given and allowNulls is set to false")
        self.assertIn("*.cfg", lines[1])

    def test_missing_location(self):
        """Test a missing root gives a traversal error line."""
        missing = self.root / "missing"
        rule = RequireGlobMatches(GlobMatchesConfig(globs=["*"], location=missing))

        with self.assertLogs("rule_evaluator", level="ERROR"):
            lines = rule.evaluate()

        self.assertEqual(lines, [f"I/O error while searching for: * on location: {missing}"])

    def test_execute_default_message(self):
        rule = RequireGlobMatches(GlobMatchesConfig(globs=["**/*.cfg"], location=self.root))

        with self.assertRaises(RuleFailure) as ctx:
            rule.execute()

        self.assertTrue(ctx.exception.message.endswith(DEFAULT_FAILURE_MESSAGE))

    def test_empty_globs_rejected_before_io(self):
        rule = RequireGlobMatches(GlobMatchesConfig(globs=[], location=self.root))

        with mock.patch.object(rule_evaluator, "check_glob_match") as checker:
            with self.assertRaises(InvalidConfigurationError) as ctx:
                rule.execute()

        self.assertEqual(str(ctx.exception), "at least 1 glob must be specified")
        checker.assert_not_called()

    def test_glob_rule_cache_id_is_constant(self):
        first = RequireGlobMatches(GlobMatchesConfig(globs=["a"], location=self.root))
        second = RequireGlobMatches(GlobMatchesConfig(globs=["b"], location="/elsewhere"))

        self.assertEqual(first.cache_id, "0")
        self.assertEqual(first.cache_id, second.cache_id)


class TestBuildRule(unittest.TestCase):
    """Test rule construction from configuration."""

    def test_build_rule_dispatches_on_config_type(self):
        self.assertIsInstance(build_rule(FilesContentConfig(files=["a"], content="x")), RequireFilesContent)
        self.assertIsInstance(build_rule(GlobMatchesConfig(globs=["*"], location=".")), RequireGlobMatches)

    def test_build_rule_rejects_unknown_config(self):
        with self.assertRaises(TypeError):
            build_rule(object())


if __name__ == '__main__':
    unittest.main()
