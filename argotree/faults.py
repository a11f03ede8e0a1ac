"""
Argotree faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every issue the tree can
  surface. Codes are grouped by domain so logs and searches stay predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/deferred/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Two families
- Structural faults (StructuralError) come only from CommandTree.insert() and are
  always raised: a tree that fails them is never published.
- Resolution faults (ResolutionError) come from CommandTree.parse() and are
  returned as values; the caller decides whether to trigger() them.
- Argument faults (ArgumentParseError) are per-attempt parser failures carried
  inside a ParseResult; they never escape the tree on their own.

Integration
- In non-shell mode, exceptions are raised; in shell mode, they are rendered via rich.
"""
import copy
import inspect
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the tree (stable identifiers).

    grouping (by high-level domain)
    - structure (211xx): raised while inserting commands
      • INVALID_TOP_LEVEL, AMBIGUOUS_NODE, UNREGISTERED_LEAF, DUPLICATE_COMMAND
    - resolution (221xx): returned while parsing input
      • NO_SUCH_COMMAND, INCOMPLETE_COMMAND, MALFORMED_INPUT
    - arguments (231xx): produced by component parsers for a single attempt
      • LITERAL_MISMATCH, CONVERSION_FAILED, MISSING_INPUT
    - warnings (241xx)
      • REGISTRATION_DECLINED
    """
    # --- structure errors (21xxx) ---
    INVALID_TOP_LEVEL           = 21101
    AMBIGUOUS_NODE              = 21102
    UNREGISTERED_LEAF           = 21103
    DUPLICATE_COMMAND           = 21104

    # --- resolution errors (22xxx) ---
    NO_SUCH_COMMAND             = 22101
    INCOMPLETE_COMMAND          = 22102
    MALFORMED_INPUT             = 22103

    # --- argument errors (23xxx) ---
    LITERAL_MISMATCH            = 23101
    CONVERSION_FAILED           = 23102
    MISSING_INPUT               = 23103

    # --- warnings (24xxx) ---
    REGISTRATION_DECLINED       = 24101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _renderer(options, defaults):
    """
    Build the (styler, text) pair shared by every fault renderer.

    Styles come from `defaults` overridden by a __styles__ mapping in __main__.
    """
    styles = defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))
    colorful = options.get("colorful", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        if not colorful:
            return Text(str(fragment))
        return Text(str(fragment), style)

    return styler, text


def _prog(options):
    return getattr(__import__("__main__"), "__prog__", options.get("prog", "argotree"))


class CommandException(Exception):
    """
    Base fault: a lowercased message plus free-form keyword options.

    Well-known options
    - title, code (FaultCode), hint: rendering header and advice.
    - chain: tuple of components from the root to where the fault happened.
    - token: the offending input token (None at end of input).
    - context: the Context the fault was raised for.
    - shell, fancy, colorful, deferred: runtime flags consumed by __trigger__/__rich__.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def chain(self):
        return tuple(self.options.get("chain", ()))

    @property
    def token(self):
        return self.options.get("token")

    @property
    def context(self):
        return self.options.get("context")

    def __rich__(self):
        styler, text = _renderer(self.options, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

        code = self.code.normalize() if isinstance(self.code, FaultCode) else "?"
        header = Text.assemble(
            "[ ",
            text(_prog(self.options), styler("prog-name")),
            " — ",
            text(code, styler("code")),
            " | ",
            text(self.options.get("title", type(self).__name__).title(), styler("error-title")),
            " ]"
        )
        message = text(self.message or "", styler("error-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint", ""), styler("hint")))

        if self.options.get("fancy", False):
            width = console.width - 4
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(message, hint), title=header, title_align="left", width=width)

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class StructuralError(CommandException): ...
class InvalidTopLevelComponentError(StructuralError): ...
class AmbiguousNodeError(StructuralError): ...
class UnregisteredLeafError(StructuralError): ...
class DuplicateCommandError(StructuralError): ...

class ResolutionError(CommandException): ...
class NoSuchCommandError(ResolutionError): ...
class IncompleteCommandError(ResolutionError): ...
class MalformedInputError(ResolutionError): ...

class ArgumentParseError(CommandException): ...
class LiteralMismatchError(ArgumentParseError): ...
class ConversionError(ArgumentParseError): ...
class MissingInputError(ArgumentParseError): ...


class CommandWarning(Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    def __rich__(self):
        styler, text = _renderer(self.options, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        })

        code = self.code.normalize() if isinstance(self.code, FaultCode) else "?"
        header = Text.assemble(
            "[ ",
            text(_prog(self.options), styler("prog-name")),
            " — ",
            text(code, styler("code")),
            " | ",
            text(self.options.get("title", type(self).__name__).title(), styler("warning-title")),
            " ]"
        )
        message = text(self.message or "", styler("warning-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint", ""), styler("hint")))

        if self.options.get("fancy", False):
            return Panel(Group(message, hint), title=header, title_align="left")

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class RegistrationDeclinedWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are
      raised and warnings go through the warnings module.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    when not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "StructuralError",
    "InvalidTopLevelComponentError",
    "AmbiguousNodeError",
    "UnregisteredLeafError",
    "DuplicateCommandError",
    "ResolutionError",
    "NoSuchCommandError",
    "IncompleteCommandError",
    "MalformedInputError",
    "ArgumentParseError",
    "LiteralMismatchError",
    "ConversionError",
    "MissingInputError",
    "CommandWarning",
    "RegistrationDeclinedWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
