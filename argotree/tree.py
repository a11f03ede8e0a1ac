"""
Argotree command tree: insertion, structural verification, and resolution.

What this module provides
- Node: a tree node owning a component (the root owns none) and an ordered
  tuple of children, with a weak back-reference to its parent used only to
  rebuild chains for diagnostics.
- CommandTree: owns the root node and exposes insert(), verify(), parse() and
  resolve().
- Match: the successful outcome of parse().

Structure invariants (hold after every successful insert)
- Every direct child of the root is a static component.
- A node with more than one child has no optional child.
- A node that owns a command has no optional child.
- Every leaf owns a command.
- Children are ordered statics first, then arguments, each group by
  case-insensitive name (stable for equal names).

Insertion
- The missing part of a path is built detached from the tree, verified as if
  grafted, and published with a single swap of the parent's children tuple.
  A structural fault therefore leaves the tree exactly as it was, and a reader
  never sees a node before its owning command is bound.
- Re-inserting the same command object is a no-op; another command whose path
  ends on an already-owned node is a DuplicateCommandError.

Resolution
- parse() walks the tree with an explicit loop over a caller-owned deque.
- Every parser attempt is transactional: the queue is restored when the
  attempt fails, so the next sibling sees the original input.
- The first sibling that matches is final; there is no backtracking into
  other branches after a descent.
- Failures are returned (NoSuchCommandError, IncompleteCommandError or
  MalformedInputError), not raised; resolve() is the raising/rendering
  convenience on top of parse().

Concurrency
- Insertions are serialized by a reentrant writer lock, so a registration
  handler may insert further commands. parse() takes no lock and only
  reads immutable tuples, so concurrent resolutions are safe once registration
  is done. A token queue must not be shared between concurrent parse() calls.
"""
import copy
import difflib
import logging
import threading
import weakref

from .commands import Command, NullRegistrationHandler
from .components import Context, ParseResult, snapshot, restore, tokenize
from .faults import *
from .formatting import StandardSyntaxFormatter
from .utils import *

logger = logging.getLogger(__name__)


def _order(node):
    """
    Sort key for siblings: statics first, then arguments, by case-insensitive name.
    """
    return not node.value.static, node.value.name.casefold()


class Node:
    """
    One node of the command tree.

    - value: the component this node stands for (None for the root).
    - children: ordered, read-only tuple of child nodes.
    - parent: the parent node, or None for the root and for detached nodes.

    A node exclusively owns its children. The parent reference is weak and is
    only followed to rebuild chains.
    """
    __slots__ = ("_value", "_children", "_parent", "__weakref__")

    def __init__(self, value=None, /):
        self._value = value
        self._children = ()
        self._parent = None

    @property
    def value(self):
        return self._value

    @property
    def children(self):
        return self._children

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def command(self):
        """
        The command owned by this node's component, if any.
        """
        return self._value.owning_command if self._value is not None else None

    def add_child(self, component, /):
        """
        Create a child for `component`, keep the children ordered, and return it.
        """
        return self._adopt(Node(component))

    def get_child(self, component, /):
        for child in self._children:
            if child._value == component:
                return child
        return None

    def is_leaf(self):
        return not self._children

    def chain(self):
        """
        Components from the root (excluded) down to this node.
        """
        chain = []
        node = self
        while node is not None and node._value is not None:
            chain.append(node._value)
            node = node.parent
        return tuple(reversed(chain))

    def _adopt(self, child, /):
        child._parent = weakref.ref(self)
        # Single reference swap: readers see either the old or the new tuple.
        self._children = tuple(sorted(self._children + (child,), key=_order))
        return child

    def __repr__(self):
        if self._value is None:
            return "node(root, children=%d)" % len(self._children)
        return "node(%r, children=%d)" % (self._value.name, len(self._children))


class Match:
    """
    Successful resolution: the matched command, the context filled along the
    path, and the tokens left in the queue after the match.
    """
    __slots__ = ("_command", "_context", "_remaining")

    def __init__(self, command, context, remaining=(), /):
        self._command = command
        self._context = context
        self._remaining = tuple(remaining)

    @property
    def command(self):
        return self._command

    @property
    def context(self):
        return self._context

    @property
    def remaining(self):
        return self._remaining

    def __call__(self):
        """
        Run the matched command with the resolution context.
        """
        return self._command(self._context)

    def __bool__(self):
        return True

    def __repr__(self):
        return "match(command=%r, remaining=%r)" % (self._command, self._remaining)


class CommandTree:
    """
    Owner of the root node and of the registration handler.

    Parameters
    - handler: RegistrationHandler (or any object with register_command, or a
      plain callable taking the command). Defaults to NullRegistrationHandler.
    - formatter: SyntaxFormatter used in diagnostics. Defaults to the standard one.
    - shell, fancy, colorful, deferred: runtime flags merged into faults surfaced
      through trigger()/resolve() (see argotree.faults).
    """

    def __init__(
            self,
            handler=Unset,
            /,
            *,
            formatter=Unset,
            shell=False,
            fancy=False,
            colorful=False,
            deferred=False,
    ):
        handler = coalesce(handler, NullRegistrationHandler())
        if callable(getattr(handler, "register_command", None)):
            self._register = handler.register_command
        elif callable(handler):
            self._register = handler
        else:
            raise TypeError("command-tree 'handler' must be callable or provide register_command(command)")

        formatter = coalesce(formatter, StandardSyntaxFormatter())
        if not callable(getattr(formatter, "format", None)):
            raise TypeError("command-tree 'formatter' must provide format(components)")

        self._root = Node()
        self._handler = handler
        self._formatter = formatter
        self._published = {}
        self._pending = set()
        self._lock = threading.RLock()
        self.shell = bool(shell)
        self.fancy = bool(fancy)
        self.colorful = bool(colorful)
        self.deferred = bool(deferred)

    @property
    def root(self):
        return self._root

    @property
    def handler(self):
        return self._handler

    @property
    def formatter(self):
        return self._formatter

    # ------------------------------------------------------------------ insert

    def insert(self, command, /):
        """
        Insert a command, verify the whole tree, and publish new commands.

        Raises a StructuralError subclass when the resulting tree would break an
        invariant; in that case nothing was changed.
        """
        if not isinstance(command, Command):
            raise TypeError("insert() argument must be a command")

        with self._lock:
            node = self._root
            components = command.components
            for index, component in enumerate(components):
                if (child := node.get_child(component)) is None:
                    break
                node = child
            else:
                index = len(components)

            graft = claim = None
            if index == len(components):
                # The whole path already exists: only the owner slot of an
                # interior node is left. It is verified as a pending claim and
                # bound once the checks pass.
                if (owner := node.command) is command:
                    logger.debug("command %r is already inserted", command.syntax)
                    return command
                if owner is not None:
                    raise DuplicateCommandError(
                        "%r is already registered by another command" % self._formatter.format(node.chain()),
                        title="duplicate command",
                        code=FaultCode.DUPLICATE_COMMAND,
                        chain=node.chain(),
                        command=command,
                        hint="give the command a distinct path or insert the existing command object",
                        docs=getdoc(FaultCode.DUPLICATE_COMMAND),
                    )
                claim = (node, command)
            else:
                head = tail = Node(copy.copy(components[index]))
                for component in components[index + 1:]:
                    tail = tail.add_child(copy.copy(component))
                tail.value.claim(command)
                graft = (node, head)

            owned = self._verify(graft, claim)

            if claim is not None:
                node.value.claim(command)
            if graft is not None:
                graft[0]._adopt(graft[1])
            logger.debug("inserted %r", command.syntax)

            self._publish(owned)
        return command

    def verify(self):
        """
        Re-run the structural checks over the whole tree and publish any
        command not published yet.
        """
        with self._lock:
            self._publish(self._verify())

    def _verify(self, graft=None, claim=None):
        """
        Check every invariant over the tree, optionally with `graft` = (parent,
        detached child) treated as already attached and `claim` = (node,
        command) treated as already bound.

        Returns the owned (chain, command) pairs in tree order.
        """
        grafted = None
        if graft is not None:
            parent, child = graft
            grafted = tuple(sorted(parent.children + (child,), key=_order))

        def children(node):
            if graft is not None and node is graft[0]:
                return grafted
            return node.children

        def owner(node):
            if claim is not None and node is claim[0]:
                return claim[1]
            return node.command

        for child in children(self._root):
            if not child.value.static:
                raise InvalidTopLevelComponentError(
                    "command %r cannot start with an argument" % self._formatter.format((child.value,)),
                    title="invalid top-level component",
                    code=FaultCode.INVALID_TOP_LEVEL,
                    chain=(child.value,),
                    hint="start every command with a static (literal) component",
                    docs=getdoc(FaultCode.INVALID_TOP_LEVEL),
                )

        owned = []
        stack = [(self._root, ())]
        while stack:
            node, chain = stack.pop()
            kids = children(node)
            command = owner(node)

            optional = [kid.value.name for kid in kids if not kid.value.required]
            if optional and (len(kids) > 1 or command is not None):
                if len(kids) > 1:
                    message = "ambiguous node %r: optional %s among %d children" % (
                        self._formatter.format(chain) or "<root>",
                        ", ".join(map(repr, optional)),
                        len(kids),
                    )
                else:
                    # An owned node matches at end of input, shadowing the default.
                    message = "ambiguous node %r: it owns a command and has optional %s" % (
                        self._formatter.format(chain),
                        ", ".join(map(repr, optional)),
                    )
                raise AmbiguousNodeError(
                    message,
                    title="ambiguous node",
                    code=FaultCode.AMBIGUOUS_NODE,
                    chain=chain,
                    optional=tuple(optional),
                    hint="an optional component must be the only child of a node that owns no command",
                    docs=getdoc(FaultCode.AMBIGUOUS_NODE),
                )

            if node.value is not None:
                if command is not None:
                    owned.append((chain, command))
                elif not kids:
                    raise UnregisteredLeafError(
                        "leaf %r has no owning command" % self._formatter.format(chain),
                        title="unregistered leaf",
                        code=FaultCode.UNREGISTERED_LEAF,
                        chain=chain,
                        hint="every path must end on a command",
                        docs=getdoc(FaultCode.UNREGISTERED_LEAF),
                    )

            for kid in reversed(kids):
                stack.append((kid, chain + (kid.value,)))

        return owned

    def _publish(self, owned):
        """
        Offer each owned command not published yet to the registration handler.

        A command counts as published only once the handler returned; when the
        handler raises, the next verify() offers it again. Commands being
        offered are skipped by nested insertions made from inside the handler.
        """
        for chain, command in owned:
            if command in self._published or command in self._pending:
                continue
            logger.debug("publishing %r", command.syntax)
            self._pending.add(command)
            try:
                accepted = self._register(command)
            finally:
                self._pending.discard(command)
            self._published[command] = chain
            if accepted is False:
                logger.warning("registration handler declined %r", command.syntax)
                self.trigger(RegistrationDeclinedWarning(
                    "registration handler declined %r" % command.syntax,
                    title="registration declined",
                    code=FaultCode.REGISTRATION_DECLINED,
                    chain=chain,
                    command=command,
                    hint="the command stays resolvable in the tree but the host does not expose it",
                    docs=getdoc(FaultCode.REGISTRATION_DECLINED),
                ))

    # ------------------------------------------------------------------- parse

    def _attempt(self, node, context, queue):
        """
        Run one parser attempt; restore the queue unless it succeeded.
        """
        state = snapshot(queue)
        try:
            result = node.value.parser.parse(context, queue)
        except BaseException:
            restore(queue, state)
            raise
        if not isinstance(result, ParseResult):
            restore(queue, state)
            raise TypeError(f"{node.value.parser!r} parse() must return a parse-result")
        if not result:
            restore(queue, state)
        elif not node.value.static:
            context.store(node.value.name, result.value)
        return result

    def parse(self, context, tokens, /):
        """
        Resolve tokens to a command.

        Parameters
        - context: a Context, or any other object used as the sender of a new Context.
        - tokens: a deque (consumed in place), a shell-like string, or an iterable of strings.

        Returns
        - Match on success.
        - NoSuchCommandError when no child matched the next token (or the input ended).
        - IncompleteCommandError when a leaf owns no command.
        - MalformedInputError when a string input cannot be split (unbalanced quotes).
        """
        if not isinstance(context, Context):
            context = Context(context)
        try:
            queue = tokenize(tokens)
        except ValueError as exception:
            return MalformedInputError(
                "cannot split %r: %s" % (tokens, str(exception).lower()),
                title="malformed input",
                code=FaultCode.MALFORMED_INPUT,
                chain=(),
                token=tokens,
                context=context,
                sender=context.sender,
                reason=str(exception),
                hint="close every quote and finish every escape",
                docs=getdoc(FaultCode.MALFORMED_INPUT),
            )

        node = self._root
        while True:
            kids = node.children

            if not kids:
                if (command := node.command) is not None:
                    logger.debug("resolved %r", command.syntax)
                    return Match(command, context, queue)
                return IncompleteCommandError(
                    "%r does not lead to a command" % self._formatter.format(node.chain()),
                    title="incomplete command",
                    code=FaultCode.INCOMPLETE_COMMAND,
                    chain=node.chain(),
                    token=queue[0] if queue else None,
                    context=context,
                    hint="this path was inserted without a command; re-run registration",
                    docs=getdoc(FaultCode.INCOMPLETE_COMMAND),
                )

            if not queue and (command := node.command) is not None:
                logger.debug("resolved %r at end of input", command.syntax)
                return Match(command, context, queue)

            if len(kids) == 1 and not kids[0].value.static:
                child, = kids
                if result := self._attempt(child, context, queue):
                    node = child
                    continue
                if not queue and not child.value.required:
                    context.store(child.value.name, child.value.default)
                    node = child
                    continue
                return self._no_such_command(node, context, queue, (result.fault,))

            faults = []
            for child in kids:
                if result := self._attempt(child, context, queue):
                    node = child
                    break
                faults.append(result.fault)
            else:
                return self._no_such_command(node, context, queue, tuple(faults))

    def _no_such_command(self, node, context, queue, causes):
        chain = node.chain()
        token = queue[0] if queue else None
        route = self._formatter.format(chain)

        names = [name for child in node.children if child.value.static for name in child.value.names]
        suggestions = difflib.get_close_matches(token, names, 5) if token is not None else []
        options = [self._formatter.format(chain + (child.value,)) for child in node.children]

        if token is None:
            message = "incomplete command %r" % route
            title = "missing input"
        elif chain:
            message = "unknown input %r after %r" % (token, route)
            title = "no such command"
        else:
            message = "unknown command %r" % token
            title = "no such command"

        if suggestions:
            hint = "did you mean %r? expected one of: %s" % (suggestions[0], ", ".join(options))
        else:
            hint = "expected one of: %s" % ", ".join(options)

        logger.debug("no such command: %s", message)
        return NoSuchCommandError(
            message,
            title=title,
            code=FaultCode.NO_SUCH_COMMAND,
            chain=chain,
            token=token,
            context=context,
            sender=context.sender,
            causes=causes,
            suggestions=tuple(suggestions),
            hint=hint,
            docs=getdoc(FaultCode.NO_SUCH_COMMAND),
        )

    def resolve(self, context, tokens, /):
        """
        parse() and surface a failure through trigger().

        Returns the Match, or None when the fault was rendered instead of raised
        (shell + deferred mode).
        """
        outcome = self.parse(context, tokens)
        if isinstance(outcome, Match):
            return outcome
        self.trigger(outcome)
        return None

    def trigger(self, fault, /, **options):
        """
        Surface a fault with this tree's runtime flags merged in.
        """
        trigger(fault, **options | {
            "tree": self,
            "shell": self.shell,
            "fancy": self.fancy,
            "colorful": self.colorful,
            "deferred": self.deferred,
        })

    # ------------------------------------------------------------- inspection

    def commands(self):
        """
        Every published command, in tree order.
        """
        commands = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            if (command := node.command) is not None and command in self._published:
                commands.append(command)
            stack.extend(reversed(node.children))
        return tuple(commands)

    def __iter__(self):
        return iter(self.commands())

    def __len__(self):
        return len(self._published)

    def __contains__(self, command, /):
        return command in self._published

    def __repr__(self):
        return "command-tree(commands=%d)" % len(self._published)


__all__ = (
    "Node",
    "Match",
    "CommandTree",
)
