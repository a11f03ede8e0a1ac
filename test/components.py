# python
"""
Components module behavioral tests (Static, Argument, parsers, Context).

Scope
- Validate construction and sanitization of Static and Argument.
- Validate identity: equality and hashing by (name, kind), independent of ownership.
- Validate the write-once owning_command slot and ownership-free copies.
- Validate the built-in parsers (LiteralParser, Converter) and ParseResult.
- Validate Context storage and tokenization of the supported input shapes.

Conventions
- Test method names follow CamelCase per project convention.
- Never pass explicit None for descr; omit it instead.
"""

from __future__ import annotations

import copy
import unittest
from collections import deque
from decimal import Decimal
from pathlib import Path
from unittest import TestCase

from argotree import (
    Argument,
    Command,
    Component,
    ComponentParser,
    Context,
    Converter,
    LiteralParser,
    ParseResult,
    Static,
)
from argotree.components import restore, snapshot, tokenize
from argotree.faults import (
    ConversionError,
    DuplicateCommandError,
    FaultCode,
    LiteralMismatchError,
    MissingInputError,
)


class TestStatic(TestCase):
    """Behavioral tests for Static (literal) components."""

    def testStaticDefaults(self):
        s = Static("add")
        self.assertEqual(s.name, "add")
        self.assertEqual(s.aliases, ())
        self.assertEqual(s.names, ("add",))
        self.assertTrue(s.required)
        self.assertTrue(s.static)
        self.assertEqual(s.kind, "static")
        self.assertIsNone(s.descr)
        self.assertIsNone(s.owning_command)
        self.assertIsInstance(s.parser, LiteralParser)

    def testStaticAliases(self):
        s = Static("remove", "rm", "del")
        self.assertEqual(s.aliases, ("rm", "del"))
        self.assertEqual(s.names, ("remove", "rm", "del"))

    def testStaticNameIsTrimmed(self):
        self.assertEqual(Static("  add ").name, "add")

    def testStaticNameEmptyRejected(self):
        with self.assertRaises(ValueError):
            Static("   ")

    def testStaticNameWithWhitespaceRejected(self):
        with self.assertRaises(ValueError):
            Static("add user")

    def testStaticNameMustBeString(self):
        with self.assertRaises(TypeError):
            Static(42)

    def testStaticDuplicateAliasesRejected(self):
        with self.assertRaises(ValueError):
            Static("remove", "rm", "rm")
        with self.assertRaises(ValueError):
            Static("remove", "remove")

    def testStaticDescr(self):
        self.assertEqual(Static("add", descr=" add things ").descr, "add things")
        with self.assertRaises(ValueError):
            Static("add", descr="  ")
        with self.assertRaises(TypeError):
            Static("add", descr=None)

    def testStaticRepr(self):
        self.assertEqual(repr(Static("add", "a")), "static(name='add', aliases=('a',))")


class TestArgument(TestCase):
    """Behavioral tests for Argument (typed) components."""

    def testArgumentDefaults(self):
        a = Argument("amount")
        self.assertEqual(a.kind, "argument")
        self.assertFalse(a.static)
        self.assertTrue(a.required)
        self.assertIsNone(a.default)
        self.assertIsInstance(a.parser, Converter)
        self.assertIs(a.parser.type, str)

    def testArgumentType(self):
        self.assertIs(Argument("amount", int).parser.type, int)

    def testArgumentOptionalDefault(self):
        a = Argument("name", required=False, default="world")
        self.assertFalse(a.required)
        self.assertEqual(a.default, "world")

    def testRequiredArgumentWithDefaultRejected(self):
        with self.assertRaises(TypeError):
            Argument("name", default="world")

    def testArgumentExplicitParser(self):
        parser = LiteralParser("on", "off")
        self.assertIs(Argument("state", parser=parser).parser, parser)

    def testArgumentParserWithoutParseRejected(self):
        with self.assertRaises(TypeError):
            Argument("state", parser=object())

    def testArgumentTypeMustBeCallable(self):
        with self.assertRaises(TypeError):
            Argument("state", "int")

    def testArgumentRepr(self):
        self.assertEqual(
            repr(Argument("n", int)),
            "argument(name='n', required=True, default=None, parser=converter(int))",
        )


class TestIdentity(TestCase):
    """Equality, hashing, ownership and copies."""

    def testEqualityByNameAndKind(self):
        self.assertEqual(Static("foo"), Static("foo"))
        self.assertEqual(Argument("foo", int), Argument("foo", str))
        self.assertNotEqual(Static("foo"), Argument("foo"))
        self.assertNotEqual(Static("foo"), Static("bar"))
        self.assertNotEqual(Static("foo"), "foo")

    def testAliasesDoNotAffectEquality(self):
        self.assertEqual(Static("remove", "rm"), Static("remove"))

    def testHashMatchesEquality(self):
        self.assertEqual(hash(Static("foo")), hash(Static("foo")))
        self.assertEqual(len({Static("foo"), Static("foo"), Argument("foo")}), 2)

    def testBaseComponentCannotBeInstantiated(self):
        with self.assertRaises(TypeError):
            Component("foo")

    def testClaimIsWriteOnce(self):
        s = Static("foo")
        first = Command(Static("foo"))
        second = Command(Static("foo"))

        self.assertTrue(s.claim(first))
        self.assertFalse(s.claim(first))
        self.assertIs(s.owning_command, first)

        with self.assertRaises(DuplicateCommandError) as context:
            s.claim(second)
        self.assertEqual(context.exception.code, FaultCode.DUPLICATE_COMMAND)
        self.assertIs(s.owning_command, first)

    def testOwnershipDoesNotAffectEquality(self):
        s = Static("foo")
        s.claim(Command(Static("foo")))
        self.assertEqual(s, Static("foo"))

    def testCopyDropsOwnership(self):
        s = Static("remove", "rm", descr="remove things")
        s.claim(Command(Static("remove")))

        clone = copy.copy(s)

        self.assertIsNot(clone, s)
        self.assertEqual(clone, s)
        self.assertEqual(clone.aliases, ("rm",))
        self.assertEqual(clone.descr, "remove things")
        self.assertIsNone(clone.owning_command)
        self.assertIsNotNone(s.owning_command)


class TestParsers(TestCase):
    """LiteralParser, Converter and ParseResult."""

    def testLiteralParserConsumesOnMatch(self):
        queue = deque(["rm", "file"])
        result = LiteralParser("remove", "rm").parse(Context(), queue)
        self.assertTrue(result)
        self.assertEqual(result.value, "rm")
        self.assertEqual(result.consumed, 1)
        self.assertEqual(queue, deque(["file"]))

    def testLiteralParserIsCaseSensitive(self):
        queue = deque(["RM"])
        result = LiteralParser("rm").parse(Context(), queue)
        self.assertFalse(result)
        self.assertIsInstance(result.fault, LiteralMismatchError)
        self.assertEqual(result.fault.token, "RM")
        self.assertEqual(queue, deque(["RM"]))

    def testLiteralParserOnEmptyQueue(self):
        result = LiteralParser("rm").parse(Context(), deque())
        self.assertIsInstance(result.fault, MissingInputError)
        self.assertIsNone(result.fault.token)

    def testLiteralParserRequiresNames(self):
        with self.assertRaises(TypeError):
            LiteralParser()

    def testConverterSuccess(self):
        queue = deque(["5", "rest"])
        result = Converter(int).parse(Context(), queue)
        self.assertEqual(result.value, 5)
        self.assertEqual(queue, deque(["rest"]))

    def testConverterWithPath(self):
        result = Converter(Path).parse(Context(), deque(["/tmp"]))
        self.assertEqual(result.value, Path("/tmp"))

    def testConverterFailureKeepsToken(self):
        queue = deque(["abc"])
        result = Converter(int).parse(Context(), queue)
        self.assertFalse(result)
        self.assertIsInstance(result.fault, ConversionError)
        self.assertEqual(result.fault.code, FaultCode.CONVERSION_FAILED)
        self.assertEqual(result.fault.token, "abc")
        self.assertIn("reason", result.fault.options)
        self.assertEqual(queue, deque(["abc"]))

    def testConverterArithmeticFailure(self):
        queue = deque(["abc"])
        result = Converter(Decimal).parse(Context(), queue)
        self.assertIsInstance(result.fault, ConversionError)
        self.assertEqual(result.fault.token, "abc")
        self.assertEqual(queue, deque(["abc"]))
        self.assertEqual(Converter(Decimal).parse(Context(), deque(["1.5"])).value, Decimal("1.5"))

    def testConverterOnEmptyQueue(self):
        result = Converter(int).parse(Context(), deque())
        self.assertIsInstance(result.fault, MissingInputError)

    def testParseResultTruthiness(self):
        self.assertTrue(ParseResult.success(0))
        self.assertTrue(ParseResult.success(None, 0))
        self.assertFalse(ParseResult.failure(ConversionError("no")))

    def testParseResultFailureRequiresFault(self):
        with self.assertRaises(TypeError):
            ParseResult.failure(ValueError("no"))

    def testParseResultConsumedMustBeNonNegative(self):
        with self.assertRaises(ValueError):
            ParseResult.success("x", -1)

    def testParseResultAccessors(self):
        success = ParseResult.success("x", 2)
        self.assertEqual(success.value, "x")
        self.assertEqual(success.consumed, 2)
        self.assertIsNone(success.fault)

        fault = ConversionError("no")
        failure = ParseResult.failure(fault)
        self.assertIsNone(failure.value)
        self.assertEqual(failure.consumed, 0)
        self.assertIs(failure.fault, fault)

    def testBaseParserIsAbstract(self):
        with self.assertRaises(NotImplementedError):
            ComponentParser().parse(Context(), deque())


class TestContext(TestCase):
    """Context storage."""

    def testSender(self):
        self.assertEqual(Context("alice").sender, "alice")
        self.assertIsNone(Context().sender)

    def testStoreAndRead(self):
        context = Context()
        context.store("n", 5)
        self.assertEqual(context["n"], 5)
        self.assertEqual(context.get("n"), 5)
        self.assertEqual(context.get("missing", 1), 1)
        self.assertIn("n", context)
        self.assertNotIn("missing", context)
        with self.assertRaises(KeyError):
            context["missing"]

    def testValuesAreReadOnly(self):
        context = Context()
        context.store("n", 5)
        with self.assertRaises(TypeError):
            context.values["n"] = 6
        self.assertEqual(dict(context.values), {"n": 5})


class TestTokenize(TestCase):
    """Normalization of parse input and queue snapshots."""

    def testDequeIsReturnedAsIs(self):
        queue = deque(["a"])
        self.assertIs(tokenize(queue), queue)

    def testStringIsShellSplit(self):
        self.assertEqual(tokenize('say "hello world" now'), deque(["say", "hello world", "now"]))

    def testIterableIsTrimmed(self):
        self.assertEqual(tokenize([" a ", "", "b", "  "]), deque(["a", "b"]))

    def testNonStringTokensRejected(self):
        with self.assertRaises(TypeError):
            tokenize(["a", 1])
        with self.assertRaises(TypeError):
            tokenize(42)

    def testSnapshotRestore(self):
        queue = deque(["a", "b", "c"])
        state = snapshot(queue)
        queue.popleft()
        queue.append("z")
        restore(queue, state)
        self.assertEqual(queue, deque(["a", "b", "c"]))


if __name__ == "__main__":
    unittest.main()
