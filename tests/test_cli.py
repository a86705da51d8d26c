"""
Test suite for the fusionc command line.

Author: xwest
"""

import unittest
import sys
import os
import io
import logging
import tempfile
from contextlib import redirect_stdout, redirect_stderr
from unittest import mock

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from fusion.cli import (
    main, parse_options, format_value, CompilerOptions,
    EXIT_OK, EXIT_COMPILE_ERROR, EXIT_RUNTIME_ERROR
)


class TestCommandLine(unittest.TestCase):
    """Test cases for fusionc."""

    def tearDown(self):
        logger = logging.getLogger('fusion')
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    def _main(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            status = main(argv)
        return status, stdout.getvalue(), stderr.getvalue()

    def test_run_command(self):
        status, out, err = self._main(["-c", "1 + 2"])
        self.assertEqual(status, EXIT_OK)
        self.assertEqual(out, "3\n")
        self.assertEqual(err, "")

    def test_values_printed_in_source_form(self):
        self.assertEqual(self._main(["-c", "\"hi\""])[1], "\"hi\"\n")
        self.assertEqual(self._main(["-c", "1 < 2"])[1], "true\n")
        self.assertEqual(self._main(["-c", "7 / 2.0"])[1], "3.5\n")

    def test_nothing_printed_without_value(self):
        status, out, _ = self._main(["-c", "let a = 1"])
        self.assertEqual(status, EXIT_OK)
        self.assertEqual(out, "")

    def test_no_run(self):
        status, out, _ = self._main(["-c", "1 / 0", "--no-run"])
        self.assertEqual(status, EXIT_OK)
        self.assertEqual(out, "")

    def test_print_ast(self):
        status, out, _ = self._main(["-c", "let a = 1", "--print-ast", "--no-run"])
        self.assertEqual(status, EXIT_OK)
        self.assertIn("LetStatement a", out)
        self.assertIn("Number 1 : int", out)

    def test_compile_error(self):
        status, out, err = self._main(["-c", "missing + 1"])
        self.assertEqual(status, EXIT_COMPILE_ERROR)
        self.assertEqual(out, "")
        self.assertIn("ERROR[S010]", err)
        self.assertIn("<command>:1:1", err)

    def test_runtime_error(self):
        status, _, err = self._main(["-c", "let zero = 0\n1 / zero"])
        self.assertEqual(status, EXIT_RUNTIME_ERROR)
        self.assertIn("RUNTIME ERROR[R001]", err)

    def test_source_file(self):
        with tempfile.NamedTemporaryFile('w', suffix='.fn', delete=False, encoding='utf-8') as f:
            f.write("func sq(x: int) -> int { x * x }\nsq(12)\n")
            path = f.name
        try:
            status, out, _ = self._main([path])
        finally:
            os.unlink(path)
        self.assertEqual(status, EXIT_OK)
        self.assertEqual(out, "144\n")

    def test_missing_file(self):
        status, _, err = self._main([os.path.join(tempfile.gettempdir(), "no_such_file.fn")])
        self.assertEqual(status, EXIT_COMPILE_ERROR)
        self.assertIn("cannot read input", err)

    def test_stdin(self):
        with mock.patch('sys.stdin', io.StringIO("40 + 2")):
            status, out, _ = self._main([])
        self.assertEqual(status, EXIT_OK)
        self.assertEqual(out, "42\n")

    def test_file_and_command_conflict(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                parse_options(["program.fn", "-c", "1"])

    def test_log_file(self):
        handle, path = tempfile.mkstemp(suffix='.log')
        os.close(handle)
        try:
            status, _, _ = self._main(["-c", "1", "-v", "--log-file", path])
            self.tearDown()
            with open(path, 'r', encoding='utf-8') as f:
                contents = f.read()
        finally:
            os.unlink(path)
        self.assertEqual(status, EXIT_OK)
        self.assertIn("Compiled <command>", contents)


class TestOptions(unittest.TestCase):
    """Test cases for option handling helpers."""

    def test_log_levels(self):
        self.assertEqual(CompilerOptions(source="").log_level, logging.WARNING)
        self.assertEqual(CompilerOptions(source="", verbosity=1).log_level, logging.INFO)
        self.assertEqual(CompilerOptions(source="", verbosity=3).log_level, logging.DEBUG)

    def test_parse_command_options(self):
        options = parse_options(["-c", "1", "--print-ast", "--no-run", "-vv"])
        self.assertEqual(options.source, "1")
        self.assertEqual(options.filename, "<command>")
        self.assertTrue(options.print_ast)
        self.assertFalse(options.run)
        self.assertEqual(options.verbosity, 2)

    def test_format_value(self):
        self.assertEqual(format_value(True), "true")
        self.assertEqual(format_value(False), "false")
        self.assertEqual(format_value("s"), "\"s\"")
        self.assertEqual(format_value(3), "3")
        self.assertEqual(format_value(2.5), "2.5")


def run_cli_tests():
    """Run all command line tests."""
    loader = unittest.defaultTestLoader
    suite = unittest.TestSuite()
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))
    suite.addTests(loader.loadTestsFromTestCase(TestOptions))

    runner = unittest.TextTestRunner(verbosity=2)
    return runner.run(suite)


if __name__ == "__main__":
    print("Running fusionc CLI Tests...")
    print("=" * 60)

    result = run_cli_tests()
    sys.exit(0 if result.wasSuccessful() else 1)
