r"""
Argotree command components and their parsers.

Overview
- Components
  • Static: a literal path segment matched by its name or any of its aliases.
  • Argument: a typed path segment whose value comes from a component parser,
    either required or optional (with an optional default).

- Parsers
  • ComponentParser: base contract, parse(context, queue) -> ParseResult.
  • LiteralParser: accepts one of a fixed set of names (used by Static).
  • Converter: takes one token and feeds it to a callable (int, float, Path, ...).

- Results and context
  • ParseResult: success(value, consumed) or failure(fault); truthy on success.
  • Context: the sender plus the values produced along the matched path.

Identity
- Components compare and hash by (name, kind) only. The write-once
  owning_command slot does not take part in equality, so lookups during
  insertion are unaffected by registration state.

Parser contract
- A parser reads from the left of a collections.deque of string tokens.
- It must only consume tokens on success, and report how many it consumed.
- The tree snapshots the queue before each attempt and restores it on failure,
  so a misbehaving parser cannot leak consumption into a sibling attempt.

Quick example:
    >>> from argotree import Static, Argument, Command
    >>> add = Command(Static("add", "a"), Argument("amount", int), handler=print)
    >>> add.syntax
    'add <amount>'
"""
import functools
import operator
import re
import shlex
from collections import deque

from .faults import *
from .utils import *


class ComponentType(type):
    """
    Metaclass giving components stable, introspectable shapes.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens) for
      consistent messages.
    - Expose the names listed in __introspectable__ as read-only properties via mirror().
    - Provide stable __repr__/__rich_repr__ implementations for diagnostics.

    Conventions
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - static(name='add', aliases=('a',))
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class ParseResult:
    """
    Outcome of a single component parser attempt.

    Build through the two constructors:
    - ParseResult.success(value, consumed=1)
    - ParseResult.failure(fault)

    A result is truthy when it carries a value.
    """
    __slots__ = ("_value", "_consumed", "_fault")

    def __init__(self, value=Unset, consumed=0, fault=Unset, /):
        if (value is Unset) == (fault is Unset):
            raise TypeError("parse result must carry either a value or a fault")
        if not isinstance(consumed, int) or isinstance(consumed, bool) or consumed < 0:
            raise ValueError("parse result 'consumed' must be a non-negative integer")
        self._value = value
        self._consumed = consumed
        self._fault = fault

    @classmethod
    def success(cls, value, consumed=1, /):
        return cls(value, consumed)

    @classmethod
    def failure(cls, fault, /):
        if not isinstance(fault, CommandException):
            raise TypeError("parse result failure must be a command-exception")
        return cls(Unset, 0, fault)

    @property
    def value(self):
        return coalesce(self._value)

    @property
    def consumed(self):
        return self._consumed

    @property
    def fault(self):
        return coalesce(self._fault)

    def __bool__(self):
        return self._fault is Unset

    def __repr__(self):
        if self:
            return "parse-result(value=%r, consumed=%d)" % (self._value, self._consumed)
        return "parse-result(fault=%r)" % (self._fault,)


class ComponentParser:
    """
    Base contract for component parsers.

    Subclasses implement parse(context, queue) and return a ParseResult. On
    failure they must leave the queue untouched.
    """

    def parse(self, context, queue, /):
        raise NotImplementedError

    def __repr__(self):
        return f"{typename(type(self))}()"


class LiteralParser(ComponentParser):
    """
    Accept exactly one token equal to one of the given names (case-sensitive).
    """

    def __init__(self, *names):
        if not names:
            raise TypeError("literal-parser must specify at least one name")
        self._names = frozenset(names)
        self._primary = names[0]

    @property
    def names(self):
        return self._names

    def parse(self, context, queue, /):
        if not queue:
            return ParseResult.failure(MissingInputError(
                "expected %r but the input ended" % self._primary,
                title="missing literal",
                code=FaultCode.MISSING_INPUT,
                token=None,
            ))
        if (token := queue[0]) not in self._names:
            return ParseResult.failure(LiteralMismatchError(
                "expected %r but got %r" % (self._primary, token),
                title="literal mismatch",
                code=FaultCode.LITERAL_MISMATCH,
                token=token,
            ))
        queue.popleft()
        return ParseResult.success(token, 1)

    def __repr__(self):
        return "literal-parser(%s)" % ", ".join(map(repr, sorted(self._names)))


class Converter(ComponentParser):
    """
    Take one token and convert it with a callable.

    ValueError, TypeError and ArithmeticError (decimal.InvalidOperation) raised
    by the callable become a ConversionError failure; the token stays in the
    queue.
    """

    def __init__(self, type=str, /):
        if not callable(type):
            raise TypeError("converter 'type' must be callable")
        self._type = type

    @property
    def type(self):
        return self._type

    def parse(self, context, queue, /):
        label = getattr(self._type, "__name__", repr(self._type))
        if not queue:
            return ParseResult.failure(MissingInputError(
                "expected a %s value but the input ended" % label,
                title="missing value",
                code=FaultCode.MISSING_INPUT,
                token=None,
            ))
        token = queue[0]
        try:
            value = self._type(token)
        except (ValueError, TypeError, ArithmeticError) as exception:
            return ParseResult.failure(ConversionError(
                "cannot convert %r to %s" % (token, label),
                title="conversion failed",
                code=FaultCode.CONVERSION_FAILED,
                token=token,
                reason=str(exception),
            ))
        queue.popleft()
        return ParseResult.success(value, 1)

    def __repr__(self):
        return "converter(%s)" % getattr(self._type, "__name__", repr(self._type))


def _sanitize_name(cls, name, /, what="name"):
    """
    Internal: validate a component name or alias and return it trimmed.

    Names are non-empty strings without whitespace: a name is also the literal
    token a Static matches, and tokens never contain whitespace.
    """
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {what} must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} {what} cannot be empty")
    elif re.search(r"\s", name):
        raise ValueError(f"{cls.__typename__} {what} cannot contain whitespace")
    return name


def _sanitize_descr(cls, descr, /):
    if not isinstance(descr, str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    return coalesce(descr)


class Component(metaclass=ComponentType):
    """
    One segment of a command path.

    Shared fields
    - name: identity of the component (together with its kind).
    - required: whether the segment must appear in the input.
    - default: value stored for an optional argument absent from the input.
    - parser: the ComponentParser used to match input.
    - descr: optional short help text.
    - owning_command: the Command whose path ends on this component, once claimed.

    Components are created through Static or Argument; the base class is not
    instantiated directly.
    """

    __introspectable__ = (
        "name",
        "required",
        "default",
        "parser",
        "descr",
        "owning_command",
    )

    __kind__ = Unset

    def __new__(cls, *args, **kwargs):
        if cls.__kind__ is Unset:
            raise TypeError(f"{cls.__typename__} cannot be instantiated directly, use static or argument")
        return super().__new__(cls)

    @property
    def kind(self):
        return type(self).__kind__

    @property
    def static(self):
        return self.kind == "static"

    def claim(self, command, /):
        """
        Bind the owning command (write-once).

        Returns True when the slot was empty, False when `command` already owns
        it; any other owner is a DuplicateCommandError.
        """
        if self._owning_command is None:
            self._owning_command = command
            return True
        if self._owning_command is command:
            return False
        raise DuplicateCommandError(
            "%s %r is already owned by another command" % (type(self).__typename__, self.name),
            title="duplicate command",
            code=FaultCode.DUPLICATE_COMMAND,
            component=self,
        )

    def __copy__(self):
        """
        Shallow copy with an empty owning_command slot.
        """
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._owning_command = None
        return clone

    def __eq__(self, other):
        if not isinstance(other, Component):
            return NotImplemented
        return (self.name, self.kind) == (other.name, other.kind)

    def __hash__(self):
        return hash((self.name, self.kind))


class Static(Component):
    """
    Literal path segment, matched exactly by its name or one of its aliases.

    Static components are always required.
    """

    __introspectable__ = Component.__introspectable__ + ("aliases",)
    __displayable__ = ("name", "aliases")
    __kind__ = "static"

    def __new__(cls, name, /, *aliases, descr=Unset):
        self = super().__new__(cls)

        name = _sanitize_name(cls, name)
        sanitized = []
        for alias in aliases:
            alias = _sanitize_name(cls, alias, "aliases")
            if alias == name or alias in sanitized:
                raise ValueError(f"{cls.__typename__} aliases cannot contain duplicates")
            sanitized.append(alias)

        self._name = name
        self._aliases = tuple(sanitized)
        self._required = True
        self._default = None
        self._parser = LiteralParser(name, *sanitized)
        self._descr = _sanitize_descr(cls, descr)
        self._owning_command = None
        return self

    @property
    def names(self):
        return (self._name,) + self._aliases


class Argument(Component):
    """
    Typed path segment.

    Parameters
    - name: label used in syntax strings and as the key in the Context.
    - type: converter callable, wrapped in a Converter when no parser is given.
    - parser: explicit ComponentParser (overrides type).
    - required: when False the argument may be absent (only as the sole child
      of its node, the tree rejects optional siblings).
    - default: value stored in the Context when an optional argument is absent.
      Required arguments cannot carry a default.
    """

    __displayable__ = ("name", "required", "default", "parser")
    __kind__ = "argument"

    def __new__(cls, name, /, type=str, *, parser=Unset, required=True, default=Unset, descr=Unset):
        self = super().__new__(cls)

        if parser is Unset:
            parser = Converter(type)
        elif not callable(getattr(parser, "parse", None)):
            raise TypeError(f"{cls.__typename__} 'parser' must provide a parse(context, queue) method")

        if required and default is not Unset:
            raise TypeError(f"required {cls.__typename__} cannot specify a 'default'")

        self._name = _sanitize_name(cls, name)
        self._required = bool(required)
        self._default = coalesce(default)
        self._parser = parser
        self._descr = _sanitize_descr(cls, descr)
        self._owning_command = None
        return self


class Context:
    """
    Per-resolution state: the sender plus the values parsed along the way.

    A Context belongs to a single parse() call; do not share one across
    concurrent resolutions.
    """

    def __init__(self, sender=None, /):
        self._sender = sender
        self._values = {}

    @property
    def sender(self):
        return self._sender

    values = mirror("values")

    def store(self, name, value, /):
        self._values[name] = value

    def get(self, name, default=None, /):
        return self._values.get(name, default)

    def __getitem__(self, name, /):
        return self._values[name]

    def __contains__(self, name, /):
        return name in self._values

    def __repr__(self):
        return "context(sender=%r, values=%r)" % (self._sender, self._values)


def snapshot(queue, /):
    """
    Copy the queue state before a parser attempt.
    """
    return tuple(queue)


def restore(queue, state, /):
    """
    Put the queue back to a snapshot taken with snapshot().
    """
    if len(queue) != len(state) or tuple(queue) != state:
        queue.clear()
        queue.extend(state)


def tokenize(tokens, /):
    """
    Normalize input into a deque of tokens.

    - deque: returned as-is (the caller's queue is consumed in place).
    - str: shell-like splitting via shlex.split.
    - Iterable[str]: each element trimmed, empty elements dropped.
    """
    if isinstance(tokens, deque):
        return tokens
    if isinstance(tokens, str):
        return deque(shlex.split(tokens))
    try:
        iterator = iter(tokens)
    except TypeError:
        raise TypeError("tokens must be a string, a deque or an iterable of strings") from None

    queue = deque()
    for token in iterator:
        if not isinstance(token, str):
            raise TypeError("tokens must be a string, a deque or an iterable of strings")
        if token := token.strip():
            queue.append(token)
    return queue


__all__ = (
    "Component",
    "Static",
    "Argument",
    "ParseResult",
    "ComponentParser",
    "LiteralParser",
    "Converter",
    "Context",
)
