"""
Argotree command layer: the unit stored in a tree and the registration contract.

What this module provides
- Command: an immutable ordered path of components plus an opaque handler.
  • Path order is root to leaf; the first component names the command.
  • Calling a command forwards the resolution Context to its handler.

- RegistrationHandler: the outbound contract a CommandTree publishes to. A
  platform adapter implements register_command(command) to expose each newly
  valid command to its host (a chat bot, a game server, a shell).
- NullRegistrationHandler: accepts everything, does nothing.

Quick start
    from argotree import Command, CommandTree, Static, Argument, Context

    tree = CommandTree()
    tree.insert(Command(Static("count"), Argument("n", int), handler=lambda ctx: print(ctx["n"])))

    match = tree.parse(Context(), "count 5")
    match.command(match.context)  # prints 5
"""
import functools
import operator
import re

from .components import Component
from .formatting import StandardSyntaxFormatter
from .utils import *


class CommandType(type):
    """
    Metaclass that gives commands a stable, introspectable shape.

    - __typename__ derived from the class name (camel-case split with hyphens).
    - Read-only properties for every name in __introspectable__ (via mirror()).
    - __repr__/__rich_repr__ driven by __displayable__ (or __introspectable__).
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
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Command(metaclass=CommandType):
    """
    Ordered sequence of components plus a handler.

    Rules
    - At least one component; every item must be a Component.
    - A component may not appear twice in the same path (component equality).
    - The handler is opaque to the tree; when it is callable, calling the
      command forwards to it.

    Commands compare by identity: two commands with the same path are distinct
    objects, and the tree rejects the second one on insertion.
    """

    __introspectable__ = (
        "components",
        "handler",
        "descr",
    )

    __displayable__ = (
        "syntax",
        "descr",
    )

    def __new__(cls, *components, handler=Unset, descr=Unset):
        if not components:
            raise TypeError(f"{cls.__typename__} must specify at least one component")

        sanitized, seen = [], set()
        for component in components:
            if not isinstance(component, Component):
                raise TypeError(f"{cls.__typename__} components must be static or argument components")
            if component in seen:
                raise ValueError(f"{cls.__typename__} components cannot contain duplicates ({component.name!r})")
            seen.add(component)
            sanitized.append(component)

        if not isinstance(descr, str | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")
        elif isinstance(descr, str) and not (descr := descr.strip()):
            raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")

        self = super().__new__(cls)
        self._components = tuple(sanitized)
        self._handler = handler
        self._descr = coalesce(descr)
        return self

    @property
    def name(self):
        return self._components[0].name

    @property
    def syntax(self):
        return StandardSyntaxFormatter().format(self._components)

    def __call__(self, context, /):
        """
        Forward the resolution context to the handler (no-op without a callable handler).
        """
        if not callable(self._handler):
            return None
        return self._handler(context)

    def __len__(self):
        return len(self._components)

    def __iter__(self):
        return iter(self._components)


class RegistrationHandler:
    """
    Receiver of commands published by a CommandTree after a successful insertion.

    register_command(command) is called once per newly published command and
    returns True when the host accepted it. A False return is reported as a
    RegistrationDeclinedWarning; the command stays in the tree.
    """

    def register_command(self, command, /):
        raise NotImplementedError


class NullRegistrationHandler(RegistrationHandler):
    def register_command(self, command, /):
        return True


__all__ = (
    "Command",
    "RegistrationHandler",
    "NullRegistrationHandler",
)
