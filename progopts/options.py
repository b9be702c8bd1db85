"""
progopts program options: registration, resolution and help rendering.

Overview
- ProgramOptions collects option descriptors (see progopts.arguments) bound
  to caller storage, then resolves one argument vector against them.
- A pass runs in fixed phases over one shared token buffer:
  1. registration closes and a "-h/--help" flag is appended;
  2. the buffer is preprocessed once (combined "-xVALUE" tokens are split);
  3. named descriptors consume in stable order (short name, else long name),
     dependent named vectors last;
  4. positional descriptors consume in registration order;
  5. terminal check: help, then leftovers, then required options.
- Outcomes are reported through the Outcome enum. Parse errors are raised
  (default) or rendered on stderr in shell mode.

Example
    >>> settings = {"count": 0, "verbose": False}
    >>> options = ProgramOptions("demo")
    >>> _ = options.register_value("c", "count", (settings, "count"), "how many")
    >>> _ = options.register_flag("v", "verbose", (settings, "verbose"), "talk more")
    >>> options.process(["-c5", "-v"])
    <Outcome.SUCCESS: 'success'>
    >>> settings
    {'count': 5, 'verbose': True}
"""
import difflib
import enum
import logging
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .arguments import *
from .bindings import Binding
from .faults import *
from .tokens import looks_like_flag, split_combined
from .utils import *

logger = logging.getLogger(__name__)

HELP_PAD = 40

_RESERVED = ("h", "help")


class Outcome(enum.Enum):
    """Terminal outcome of ProgramOptions.process()."""
    SUCCESS = "success"
    HELP_REQUESTED = "help-requested"
    PARSE_ERROR = "parse-error"


def _tokenize(arguments, /):
    if arguments is Unset:
        return sys.argv[1:]
    elif isinstance(arguments, str):
        return shlex.split(arguments)
    elif isinstance(arguments, Iterable):
        tokens = list(arguments)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("process() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("process() argument must be a string or an iterable of strings")


class ProgramOptions:
    """
    Registry and resolution engine for the options of one program.

    Parameters
    - prog: program name shown in usage lines and fault headers.
    - descr: optional program description shown by print_help().
    - shell: when True, parse errors are printed on stderr and process()
      returns Outcome.PARSE_ERROR; help is printed when requested.
      When False, parse errors are raised.
    - colorful: style the help and fault output.
    - fancy: wrap the help and fault output in a panel.

    Every register_* method returns the instance, so declarations chain.
    A ProgramOptions processes exactly one argument vector; registering
    afterwards, or processing twice, raises RuntimeError.
    """

    def __init__(self, prog, descr=Unset, /, *, shell=False, colorful=True, fancy=False):
        if not isinstance(prog, str):
            raise TypeError("ProgramOptions 'prog' must be a string")
        elif not (prog := prog.strip()):
            raise ValueError("ProgramOptions 'prog' cannot be empty")
        if not isinstance(descr, str | Text | Unset):
            raise TypeError("ProgramOptions 'descr' must be a string")

        self._prog = prog
        self._descr = coalesce(descr)
        self._shell = bool(shell)
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)

        # append-only; dependency edges refer to descriptors by index
        self._arena = []
        self._named = []
        self._positionals = []

        self._state = {"help": False}
        self._processed = False

    prog = mirror("prog")
    descr = mirror("descr")
    shell = mirror("shell")
    colorful = mirror("colorful")
    fancy = mirror("fancy")
    processed = mirror("processed")

    # ---- registration ----------------------------------------------------

    def register_flag(self, short=Unset, long=Unset, dest=Unset, descr=Unset, *, help_name=Unset, assign=Unset, required=False):
        """
        Register a presence-only switch.

        Without 'assign' the destination receives True; with it, the given
        constant (several such flags may share one destination).
        """
        if assign is Unset:
            descriptor = Flag(short, long, dest, descr, help_name=help_name, required=required)
        else:
            descriptor = AssignFlag(short, long, dest, assign, descr, help_name=help_name, required=required)
        return self._register(descriptor)

    def register_value(self, short=Unset, long=Unset, dest=Unset, descr=Unset, *, help_name=Unset, type=Unset, required=False):
        """Register a named option taking exactly one value."""
        return self._register(Value(short, long, dest, descr, help_name=help_name, type=type, required=required))

    def register_vector(self, short=Unset, long=Unset, dest=Unset, arity=Unset, descr=Unset, *, help_name=Unset, type=Unset, required=False):
        """
        Register a named option taking a fixed number of values.

        'arity' is a positive integer, or depends_on(name) to read it from a
        named option registered earlier.
        """
        if isinstance(arity, Dependency):
            arity = self._resolve_dependency(arity, named=True)
            descriptor = DependentVector(short, long, dest, arity, descr, help_name=help_name, type=type, required=required)
        else:
            descriptor = Vector(short, long, dest, arity, descr, help_name=help_name, type=type, required=required)
        return self._register(descriptor)

    def register_positional(self, help_name=Unset, dest=Unset, descr=Unset, *, type=Unset, required=True):
        """Register a single positional value."""
        return self._register(Positional(help_name, dest, descr, type=type, required=required))

    def register_positional_vector(self, help_name=Unset, dest=Unset, arity=Unset, descr=Unset, *, type=Unset, exact=False, required=True):
        """
        Register a positional collecting several values.

        'arity' is a positive integer (up to that many values, or exactly that
        many with exact=True), or depends_on(name) to read it from an option
        registered earlier (exact by default).
        """
        if isinstance(arity, Dependency):
            arity = self._resolve_dependency(arity)
            descriptor = DependentPositionalVector(help_name, dest, arity, descr, type=type, required=required)
        else:
            descriptor = PositionalVector(help_name, dest, arity, descr, type=type, exact=exact, required=required)
        return self._register(descriptor)

    def _ensure_open(self):
        if self._processed:
            raise RuntimeError("%s options were already processed" % self._prog)

    def _register(self, descriptor, /, *, reserved=True):
        self._ensure_open()

        if descriptor.positional:
            for other in map(self._arena.__getitem__, self._positionals):
                if other.help_name == descriptor.help_name:
                    raise ConfigurationError("positional %r is already registered" % descriptor.help_name)
        else:
            names = tuple(filter(None, (descriptor.short, descriptor.long)))
            if reserved and (clash := next((name for name in names if name in _RESERVED), None)):
                raise ConfigurationError("option name %r is reserved for the help flag" % clash)
            for other in map(self._arena.__getitem__, self._named):
                if clash := next((name for name in names if name in (other.short, other.long)), None):
                    raise ConfigurationError("option name %r is already registered" % clash)

        index = len(self._arena)
        self._arena.append(descriptor)
        (self._positionals if descriptor.positional else self._named).append(index)
        logger.debug("registered %r at index %d", descriptor, index)
        return self

    def _resolve_dependency(self, dependency, /, *, named=False):
        """
        Bind a count dependency to an already-registered descriptor.

        Named descriptors are searched first (short, then long name), then
        positionals (help name); the first match wins. With named=True only
        named descriptors qualify, since positionals are consumed after them.
        """
        self._ensure_open()
        for index in self._named:
            if dependency.name in (self._arena[index].short, self._arena[index].long):
                return dependency.bind(self._arena, index)
        for index in self._positionals:
            if dependency.name == self._arena[index].help_name:
                if named:
                    raise ConfigurationError(
                        "named option cannot take its count from positional %r" % dependency.name
                    )
                return dependency.bind(self._arena, index)
        raise ConfigurationError("count dependency %r does not name a registered option" % dependency.name)

    # ---- resolution ------------------------------------------------------

    def _resolution_order(self):
        def key(index):
            descriptor = self._arena[index]
            return isinstance(descriptor, DependentVector), descriptor.short or descriptor.long
        return [self._arena[index] for index in sorted(self._named, key=key)]

    def process(self, arguments=Unset, /):
        """
        Resolve one argument vector (program name excluded) against the
        registered options.

        Parameters
        - arguments:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string, split via shlex.split.
          • Iterable[str]: pre-tokenized arguments, used verbatim.

        Returns
        - Outcome.HELP_REQUESTED when -h/--help was given (required options
          are not checked then).
        - Outcome.SUCCESS when every token was consumed and every required
          option was seen.
        - Outcome.PARSE_ERROR, in shell mode only, after printing the fault.

        Raises
        - ParseError subtypes on malformed input (unless shell is set).
        - ConfigurationError when a count dependency cannot be projected.

        Destination writes already made when a later descriptor fails are
        kept.
        """
        self._ensure_open()
        tokens = _tokenize(arguments)
        self._register(
            Flag("h", "help", Binding(self._state, "help"), "Show this help and exit"),
            reserved=False,
        )
        self._processed = True

        named = self._resolution_order()
        buffer = split_combined(tokens, named)
        logger.debug("preprocessed buffer: %r", buffer)

        try:
            for descriptor in named:
                descriptor.consume(buffer)
                logger.debug("resolved %s (consumed=%s), remaining %r", descriptor.name, descriptor.consumed, buffer)
            for descriptor in map(self._arena.__getitem__, self._positionals):
                descriptor.consume(buffer)
                logger.debug("resolved %s (consumed=%s), remaining %r", descriptor.name, descriptor.consumed, buffer)
        except ParseError as exception:
            fault = exception.__replace__(leftover=tuple(buffer))
        else:
            fault = self._verify(buffer)

        if fault is not None:
            logger.debug("pass failed: %s", fault)
            return self._fail(fault)

        if self._state["help"]:
            logger.debug("help requested")
            if self._shell:
                self.print_help()
            return Outcome.HELP_REQUESTED

        logger.debug("pass succeeded")
        return Outcome.SUCCESS

    def _verify(self, buffer, /):
        if self._state["help"]:
            return None

        if buffer:
            hint = "try '%s --help' to see all available options" % self._prog
            if flags := [token for token in buffer if looks_like_flag(token)]:
                spellings = [
                    spelling
                    for descriptor in self._resolution_order()
                    for spelling in (descriptor.short and "-" + descriptor.short, descriptor.long and "--" + descriptor.long)
                    if spelling
                ]
                if suggestions := difflib.get_close_matches(flags[0], spellings, 5):
                    hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], self._prog)
            return UnrecognizedArgumentError(
                "could not process %d %s: %s" % (
                    len(buffer), pluralize("argument", len(buffer)), " ".join(map(repr, buffer))
                ),
                title="unrecognized arguments",
                code=FaultCode.UNRECOGNIZED_ARGUMENT,
                hint=hint,
                token=buffer[0],
                leftover=tuple(buffer),
            )

        for descriptor in map(self._arena.__getitem__, self._named + self._positionals):
            if descriptor.required and not descriptor.consumed:
                return MissingRequiredOptionError(
                    "missing the required %s %s" % (
                        "positional argument" if descriptor.positional else "option", descriptor.name
                    ),
                    title="missing required option",
                    code=FaultCode.MISSING_REQUIRED_OPTION,
                    hint="see '%s --help' for usage" % self._prog,
                    option=descriptor,
                )
        return None

    def _fail(self, fault, /):
        trigger(fault, prog=self._prog, shell=self._shell, fancy=self._fancy, colorful=self._colorful)
        return Outcome.PARSE_ERROR

    def __iter__(self):
        """Yield the Description of every descriptor: positionals, then named in resolution order."""
        for index in self._positionals:
            yield self._arena[index].describe()
        for descriptor in self._resolution_order():
            yield descriptor.describe()

    def __len__(self):
        return len(self._arena)

    def __repr__(self):
        return f"ProgramOptions({self._prog!r}, {len(self._arena)} options)"

    # ---- rendering -------------------------------------------------------

    def _styles(self):
        return defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "usage-section": "bold #36C5F0",
            "description-section": "italic #A3A3A3",
            "group-label": "bold #FFFFFF",
            "positional-name": "bold #FFD600",
            "option-name": "bold #00E6FF",
            "argument-description": "#9CA3AF",
            "dependency": "#9CE19C dim",
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

    def _text(self, fragment, style="", /):
        if not fragment:
            return Text("")
        if not self._colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), self._styles()[style])

    def _usage(self):
        fragments = [self._text(self._prog, "program-name")]
        fragments += [self._text(self._arena[index].usage(), "usage-section") for index in self._positionals]
        fragments += [self._text(descriptor.usage(), "usage-section") for descriptor in self._resolution_order()]
        return Text.assemble(self._text("usage", "usage-label"), ": ", Text(" ").join(fragments))

    def _lines(self):
        positionals = [self._arena[index] for index in self._positionals]
        for descriptor in positionals + self._resolution_order():
            style = "positional-name" if descriptor.positional else "option-name"
            yield Text.assemble(
                self._text(descriptor.synopsis().ljust(HELP_PAD), style),
                self._text(descriptor.descr, "argument-description"),
            )
            if isinstance(arity := getattr(descriptor, "arity", None), Dependency):
                try:
                    source = arity.source().help_name
                except ConfigurationError:
                    source = arity.name
                yield Text.assemble(
                    " " * HELP_PAD,
                    self._text("-> count depends on " + source, "dependency"),
                )

    def usage(self, *, console=Unset):
        """Print the one-line usage summary."""
        coalesce(console, Console()).print(self._usage())

    def print_help(self, *, console=Unset):
        """
        Print the full help: usage line, description, then one line per
        option (synopsis padded to a fixed column, then its description).
        """
        renders = [self._usage()]
        if self._descr:
            renders.append(Text.assemble("\n", self._text(self._descr, "description-section")))
        renders.append(Text.assemble("\n", self._text("List of options", "group-label"), ":"))
        renders.extend(self._lines())

        renderable = Group(*renders)
        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[ ", f"{self._prog} HELP".upper(), " ]", style=self._styles()["panel-title"] if self._colorful else ""),
                title_align="left",
            )
        coalesce(console, Console()).print(renderable)


__all__ = (
    "Outcome",
    "ProgramOptions",
)
