"""
progopts faults (configuration and parse errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing parse
  failure. Codes are grouped by domain so logs and searches stay predictable.
- ConfigurationError: programmer mistakes detected while declaring options
  (unresolved count dependency, zero arity, duplicate names...). Always raised,
  never rendered, never recovered.
- ParseError and its subtypes: user-input failures detected while resolving
  the argument vector. They carry a message plus read-only options and know
  how to render themselves through rich.
- trigger(): central entry point to surface a parse error (raise it, or print
  it in shell mode).

UX goals
- Short titles, one-sentence bodies, a single clear hint.
- Every message names the offending option and/or token.

Integration
- Descriptors raise bare ParseErrors from consume(); the engine enriches them
  with the leftover buffer and runtime switches, then calls trigger().
"""
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
    canonical fault codes used across the engine (stable identifiers).

    grouping
    - value extraction (2110x): MISSING_VALUE, CONVERSION_FAILED, ARITY_MISMATCH
    - terminal checks (2120x): UNRECOGNIZED_ARGUMENT, MISSING_REQUIRED_OPTION

    normalize() allows a host to remap codes to custom labels through a
    __codes__ mapping in __main__ while keeping the numbers stable.
    """
    # --- value extraction ---
    MISSING_VALUE               = 21101
    CONVERSION_FAILED           = 21102
    ARITY_MISMATCH              = 21103

    # --- terminal checks ---
    UNRECOGNIZED_ARGUMENT       = 21201
    MISSING_REQUIRED_OPTION     = 21202

    def normalize(self):
        """
        return a host-normalized string for this code.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ConfigurationError(ValueError):
    """
    Raised at registration (or when a count dependency cannot be projected)
    for mistakes in how options were declared. This is a programmer error,
    not a user-input error.
    """


class ParseError(Exception):
    """
    Base type of every user-input failure.

    Options (all optional, read through self.options)
    - title, code, hint: rendering metadata.
    - option: the descriptor that failed (when there is one).
    - token: the offending token (when there is one).
    - leftover: the unconsumed buffer at the time of failure.
    - prog, shell, fancy, colorful: runtime switches merged in by the engine.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def option(self):
        return self.options.get("option")

    @property
    def token(self):
        return self.options.get("token")

    @property
    def leftover(self):
        return tuple(self.options.get("leftover", ()))

    @property
    def code(self):
        return self.options.get("code")

    def __str__(self):
        return self.message if isinstance(self.message, str) else ""

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "leftover": "#FFD600",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        prog = text(getattr(main, "__prog__", self.options.get("prog", "program")), "prog-name")
        code = self.code.normalize() if isinstance(self.code, FaultCode) else "?"

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code, "code"),
            " | ",
            text(str(self.options.get("title", "parse error")).title(), "error-title"),
            " ]"
        )
        body = [text(self.message, "error-message")]
        if self.leftover:
            body.append(Text.assemble(
                "remaining: ",
                Text(" ").join(text(repr(token), "leftover") for token in self.leftover)
            ))
        if hint := self.options.get("hint"):
            body.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*body), title=header, title_align="left")

        return Group(header, *body)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from self.__cause__
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        return replaced


class MissingValueError(ParseError): ...
class ConversionError(ParseError): ...
class ArityMismatchError(ParseError): ...
class UnrecognizedArgumentError(ParseError): ...
class MissingRequiredOptionError(ParseError): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see ParseError).
    - options are merged into the fault via __replace__(**options) first.
    - in shell mode the fault is printed on stderr; otherwise it is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ keyed by
    FaultCode; None is returned when nothing is registered.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "ConfigurationError",
    "ParseError",
    "MissingValueError",
    "ConversionError",
    "ArityMismatchError",
    "UnrecognizedArgumentError",
    "MissingRequiredOptionError",
    "trigger",
    "getdoc",
)
