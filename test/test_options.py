"""
Program options behavioral tests (resolution engine, registration, rendering).

Scope
- Validate the resolution pass: ordering, combined short options, dependent
  arities, terminal checks and outcomes.
- Validate registration rules: duplicates, reserved names, dependency binding,
  single-use lifecycle.
- Validate usage/help rendering and shell-mode reporting.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (ProgramOptions, depends_on, uint, faults).
"""

from __future__ import annotations

import contextlib
import enum
import io
import unittest
from types import SimpleNamespace
from unittest import TestCase

from rich.console import Console

from progopts import (
    ProgramOptions,
    Outcome,
    depends_on,
    uint,
    ConfigurationError,
    MissingValueError,
    ConversionError,
    ArityMismatchError,
    UnrecognizedArgumentError,
    MissingRequiredOptionError,
)


class Mode(enum.IntEnum):
    ONE = 1
    TWO = 2


def _demo():
    settings = SimpleNamespace(b=False, l=0, count=0, v=[], st=None, values=[])
    options = (
        ProgramOptions("demo", "This is a demonstration program", colorful=False)
        .register_positional("count", (settings, "count"), "a number", type=uint)
        .register_positional_vector("pos2", settings.values, depends_on("count"), "a multiple-valued positional")
        .register_value("u", "uint", (settings, "l"), "an argument with a single value", type=uint)
        .register_vector("v", "vector", settings.v, 3, "an argument with 3 values", type=int)
        .register_flag("b", "bool", (settings, "b"), "a boolean flag")
        .register_flag("O", "ONE", (settings, "st"), "a flag with specific value ONE", assign=Mode.ONE)
        .register_flag("T", "TWO", (settings, "st"), "a flag with specific value TWO", assign=Mode.TWO)
    )
    return options, settings


class TestResolution(TestCase):
    """Behavioral tests for ProgramOptions.process()."""

    def testFullDemoLine(self):
        options, settings = _demo()
        outcome = options.process("3 a b c -u 7 -v 1 2 3 -b -O")
        self.assertIs(outcome, Outcome.SUCCESS)
        self.assertEqual(settings.count, 3)
        self.assertEqual(settings.values, ["a", "b", "c"])
        self.assertEqual(settings.l, 7)
        self.assertEqual(settings.v, [1, 2, 3])
        self.assertIs(settings.b, True)
        self.assertIs(settings.st, Mode.ONE)

    def testSpacedAndCombinedShortValueAreIdentical(self):
        for arguments in (["-c", "5"], ["-c5"]):
            settings = {"count": 0}
            outcome = ProgramOptions("demo").register_value("c", "count", (settings, "count"), type=uint).process(arguments)
            self.assertIs(outcome, Outcome.SUCCESS)
            self.assertEqual(settings["count"], 5)

    def testLongNameMatches(self):
        settings = {"count": 0}
        ProgramOptions("demo").register_value("c", "count", (settings, "count")).process(["--count", "9"])
        self.assertEqual(settings["count"], 9)

    def testShellStringIsSplit(self):
        settings = {"name": ""}
        ProgramOptions("demo").register_value("n", "name", (settings, "name")).process("-n 'two words'")
        self.assertEqual(settings["name"], "two words")

    def testMissingRequiredOptionNamesIt(self):
        settings = {"u": 0}
        options = ProgramOptions("demo").register_value("u", "uint", (settings, "u"), required=True)
        with self.assertRaises(MissingRequiredOptionError) as context:
            options.process([])
        self.assertEqual(context.exception.option.name, "--uint")
        self.assertIn("--uint", str(context.exception))

    def testMissingRequiredPositional(self):
        settings = {"file": ""}
        options = ProgramOptions("demo").register_positional("file", (settings, "file"))
        with self.assertRaises(MissingRequiredOptionError) as context:
            options.process([])
        self.assertEqual(context.exception.option.help_name, "file")

    def testRequiredNamedCheckedBeforePositional(self):
        settings = {"u": 0, "file": ""}
        options = (
            ProgramOptions("demo")
            .register_positional("file", (settings, "file"))
            .register_value("u", "uint", (settings, "u"), required=True)
        )
        with self.assertRaises(MissingRequiredOptionError) as context:
            options.process([])
        self.assertEqual(context.exception.option.name, "--uint")

    def testVectorExactArity(self):
        values = []
        ProgramOptions("demo").register_vector("v", "vector", values, 3, type=int).process("-v 1 2 3")
        self.assertEqual(values, [1, 2, 3])

    def testVectorOneShortIsArityMismatch(self):
        values = []
        options = ProgramOptions("demo").register_vector("v", "vector", values, 3, type=int)
        with self.assertRaises(ArityMismatchError):
            options.process("-v 1 2")
        self.assertEqual(values, [])

    def testVectorOneExtraIsArityMismatch(self):
        values = []
        options = ProgramOptions("demo").register_vector("v", "vector", values, 3, type=int)
        with self.assertRaises(ArityMismatchError) as context:
            options.process("-v 1 2 3 4")
        self.assertEqual(context.exception.leftover, ("-v", "1", "2", "3", "4"))

    def testDependentPositionalAcceptsCount(self):
        options, settings = _demo()
        self.assertIs(options.process("3 a b c"), Outcome.SUCCESS)
        self.assertEqual(settings.values, ["a", "b", "c"])

    def testDependentPositionalExtraIsLeftover(self):
        options, settings = _demo()
        with self.assertRaises(UnrecognizedArgumentError) as context:
            options.process("3 a b c d")
        self.assertEqual(context.exception.leftover, ("d",))
        self.assertEqual(settings.values, ["a", "b", "c"])

    def testDependentPositionalOneShortIsArityMismatch(self):
        options, settings = _demo()
        with self.assertRaises(ArityMismatchError):
            options.process("3 a b")
        self.assertEqual(settings.values, [])

    def testDependentPositionalUpToCount(self):
        settings = {"count": 0}
        values = []
        options = (
            ProgramOptions("demo")
            .register_positional("count", (settings, "count"), type=uint)
            .register_positional_vector("rest", values, depends_on("count", exact=False))
        )
        self.assertIs(options.process("3 a b"), Outcome.SUCCESS)
        self.assertEqual(values, ["a", "b"])

    def testDependentPositionalOnNamedCount(self):
        settings = {"n": 0}
        values = []
        options = (
            ProgramOptions("demo")
            .register_value("n", "number", (settings, "n"), type=uint)
            .register_positional_vector("items", values, depends_on("number"))
        )
        self.assertIs(options.process("x y -n 2"), Outcome.SUCCESS)
        self.assertEqual(values, ["x", "y"])

    def testDependentNamedVectorRunsAfterItsSource(self):
        settings = {"n": 0}
        values = []
        options = (
            ProgramOptions("demo")
            .register_value("n", "number", (settings, "n"), type=uint)
            .register_vector("a", "all", values, depends_on("n"), type=int)
        )
        self.assertIs(options.process("-a 4 5 -n 2"), Outcome.SUCCESS)
        self.assertEqual(values, [4, 5])

    def testHelpWinsOverMissingRequired(self):
        options, settings = _demo()
        self.assertIs(options.process(["-b", "-h"]), Outcome.HELP_REQUESTED)

    def testLongHelpWinsOverLeftovers(self):
        options, settings = _demo()
        self.assertIs(options.process(["--help", "--bogus"]), Outcome.HELP_REQUESTED)

    def testAssignedFlagsTieBreakIsResolutionOrder(self):
        for arguments in ("-T -O", "-O -T"):
            options, settings = _demo()
            options.process("0 " + arguments)
            self.assertIs(settings.st, Mode.TWO)

    def testSingleAssignedFlag(self):
        options, settings = _demo()
        options.process("0 -O")
        self.assertIs(settings.st, Mode.ONE)

    def testConversionErrorLeavesDestinationUntouched(self):
        settings = {"u": 4}
        options = ProgramOptions("demo").register_value("u", "uint", (settings, "u"), type=uint)
        with self.assertRaises(ConversionError) as context:
            options.process("-u abc")
        self.assertEqual(settings["u"], 4)
        self.assertEqual(context.exception.token, "abc")
        self.assertIsInstance(context.exception.__cause__, ValueError)

    def testMissingValueBeforeAnotherFlag(self):
        settings = {"u": 0, "b": False}
        options = (
            ProgramOptions("demo")
            .register_value("u", "uint", (settings, "u"))
            .register_flag("b", "bool", (settings, "b"))
        )
        with self.assertRaises(MissingValueError):
            options.process("-u -b")

    def testWritesAreNotRolledBack(self):
        settings = {"u": 0}
        values = []
        options = (
            ProgramOptions("demo")
            .register_value("u", "uint", (settings, "u"), type=uint)
            .register_vector("v", "vector", values, 3, type=int)
        )
        with self.assertRaises(ArityMismatchError):
            options.process("-u 7 -v 1")
        self.assertEqual(settings["u"], 7)

    def testUnknownFlagSuggestsCloseMatch(self):
        options, settings = _demo()
        with self.assertRaises(UnrecognizedArgumentError) as context:
            options.process("0 --uitn")
        self.assertEqual(context.exception.leftover, ("--uitn",))
        self.assertIn("--uint", context.exception.options["hint"])

    def testUnregisteredCombinedTokenIsNotSplit(self):
        options, settings = _demo()
        with self.assertRaises(UnrecognizedArgumentError) as context:
            options.process("0 -x5")
        self.assertEqual(context.exception.leftover, ("-x5",))

    def testEmptyTokenIsNeverPositional(self):
        settings = {"name": "keep"}
        options = ProgramOptions("demo").register_positional("name", (settings, "name"), required=False)
        with self.assertRaises(UnrecognizedArgumentError):
            options.process([""])
        self.assertEqual(settings["name"], "keep")

    def testUnprojectableCountSourceIsConfigurationError(self):
        settings = {"b": False}
        values = []
        options = (
            ProgramOptions("demo")
            .register_flag("b", "bool", (settings, "b"))
            .register_positional_vector("items", values, depends_on("b"))
        )
        with self.assertRaises(ConfigurationError):
            options.process("x")

    def testNonStringArgumentRejected(self):
        options, settings = _demo()
        with self.assertRaises(TypeError):
            options.process([1, 2])


class TestRegistration(TestCase):
    """Behavioral tests for the registration API."""

    def testRegistrationChains(self):
        settings = {"b": False}
        options = ProgramOptions("demo")
        self.assertIs(options.register_flag("b", "bool", (settings, "b")), options)

    def testDuplicateNameRejected(self):
        settings = {"a": False, "b": False}
        options = ProgramOptions("demo").register_flag("b", "bool", (settings, "b"))
        with self.assertRaises(ConfigurationError):
            options.register_flag("b", "other", (settings, "a"))
        with self.assertRaises(ConfigurationError):
            options.register_flag("x", "bool", (settings, "a"))

    def testDuplicatePositionalRejected(self):
        settings = {"a": "", "b": ""}
        options = ProgramOptions("demo").register_positional("file", (settings, "a"))
        with self.assertRaises(ConfigurationError):
            options.register_positional("file", (settings, "b"))

    def testHelpNamesAreReserved(self):
        settings = {"b": False}
        with self.assertRaises(ConfigurationError):
            ProgramOptions("demo").register_flag("h", "hidden", (settings, "b"))
        with self.assertRaises(ConfigurationError):
            ProgramOptions("demo").register_flag("x", "help", (settings, "b"))

    def testUnresolvedDependencyRejected(self):
        with self.assertRaises(ConfigurationError):
            ProgramOptions("demo").register_positional_vector("items", [], depends_on("count"))

    def testForwardDependencyRejected(self):
        settings = {"count": 0}
        options = ProgramOptions("demo")
        with self.assertRaises(ConfigurationError):
            options.register_positional_vector("items", [], depends_on("count"))
        options.register_positional("count", (settings, "count"), type=uint)

    def testNamedVectorCannotDependOnPositional(self):
        settings = {"count": 0}
        options = ProgramOptions("demo").register_positional("count", (settings, "count"), type=uint)
        with self.assertRaises(ConfigurationError):
            options.register_vector("v", "vector", [], depends_on("count"), type=int)

    def testZeroArityRejected(self):
        with self.assertRaises(ConfigurationError):
            ProgramOptions("demo").register_vector("v", "vector", [], 0)
        with self.assertRaises(ConfigurationError):
            ProgramOptions("demo").register_positional_vector("items", [], 0)

    def testProcessTwiceRejected(self):
        options, settings = _demo()
        options.process("0")
        with self.assertRaises(RuntimeError):
            options.process("0")

    def testRegisterAfterProcessRejected(self):
        options, settings = _demo()
        options.process("0")
        with self.assertRaises(RuntimeError):
            options.register_flag("z", "zed", (settings, "b"))

    def testEmptyProgramNameRejected(self):
        with self.assertRaises(ValueError):
            ProgramOptions("  ")

    def testIterationOrder(self):
        options, settings = _demo()
        names = [description.help_name for description in options]
        self.assertEqual(names, ["count", "pos2", "ONE", "TWO", "bool", "uint", "vector"])

    def testIterationIncludesHelpAfterProcess(self):
        options, settings = _demo()
        options.process("0")
        shorts = [description.short for description in options if description.short]
        self.assertEqual(shorts, ["O", "T", "b", "h", "u", "v"])


class TestRendering(TestCase):
    """Behavioral tests for usage/help rendering and shell-mode reporting."""

    @staticmethod
    def _render(callable):
        console = Console(file=io.StringIO(), width=200, color_system=None)
        callable(console=console)
        return console.file.getvalue()

    def testUsageLine(self):
        options, settings = _demo()
        self.assertEqual(
            self._render(options.usage).strip(),
            "usage: demo count pos2 [-O] [-T] [-b] [-u u] [-v v v v]",
        )

    def testRequiredNamedDropsBrackets(self):
        settings = {"u": 0}
        options = ProgramOptions("demo", colorful=False).register_value("u", "uint", (settings, "u"), required=True)
        self.assertIn("-u u", self._render(options.usage))
        self.assertNotIn("[-u u]", self._render(options.usage))

    def testLongVectorUsageUsesRepeatCount(self):
        options = ProgramOptions("demo", colorful=False).register_vector("p", "points", [], 6, type=float)
        self.assertIn("[-p p 6x]", self._render(options.usage))

    def testHelpLines(self):
        options, settings = _demo()
        lines = self._render(options.print_help).splitlines()
        self.assertIn("This is a demonstration program", lines)
        self.assertIn("List of options:", lines)
        self.assertIn("-u [ --uint ] UINT".ljust(40) + "an argument with a single value", lines)
        self.assertIn("-v [ --vector ] VECTOR (3x)".ljust(40) + "an argument with 3 values", lines)
        self.assertIn("pos2 (count x)".ljust(40) + "a multiple-valued positional", lines)
        self.assertIn(" " * 40 + "-> count depends on count", lines)

    def testShellModeHelpIsPrinted(self):
        settings = {"b": False}
        options = ProgramOptions("demo", shell=True, colorful=False).register_flag("b", "bool", (settings, "b"))
        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            outcome = options.process("-h")
        self.assertIs(outcome, Outcome.HELP_REQUESTED)
        self.assertIn("usage: demo", stdout.getvalue())

    def testShellModeReportsInsteadOfRaising(self):
        settings = {"u": 0}
        options = ProgramOptions("demo", shell=True, colorful=False).register_value("u", "uint", (settings, "u"), type=uint)
        with contextlib.redirect_stderr(io.StringIO()) as stderr:
            outcome = options.process("-u abc")
        self.assertIs(outcome, Outcome.PARSE_ERROR)
        self.assertIn("Conversion Failed", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
