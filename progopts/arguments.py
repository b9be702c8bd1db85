r"""
progopts option descriptors.

Overview
- Named descriptors (matched by "-x" / "--name")
  • Flag: presence-only switch, writes True.
  • AssignFlag: presence-only switch writing a caller constant; several of them
    may share one destination to select a mode (last one resolved wins).
  • Value: exactly one following value token.
  • Vector: a fixed number of following value tokens, at every appearance.
  • DependentVector: a Vector whose arity is read from another option.
- Positional descriptors (matched by shape: non-empty, not flag-shaped)
  • Positional: the first remaining value token.
  • PositionalVector: up to N value tokens, in buffer order.
  • DependentPositionalVector: a PositionalVector whose N is read from
    another option at consumption time.

Capability interface (shared by every variant)
- match(token) -> bool
- consume(buffer) -> None: find, convert, remove, record; raise a ParseError
  on malformed input. Absence is never an error here; required-ness is
  checked by the engine after the whole pass.
- describe() -> Description: read-only metadata for the help renderer.
- count() -> int: projection of the parsed value to an element count (only
  scalar integral descriptors support it).

Metadata (sanitized on construction)
- short: Unset | str, a single character, without the leading "-".
- long: Unset | str, shell-style name without the leading "--"
  (r"[^\W_](-?[^\W_]+)*"); help_name defaults to it.
- help_name: str; the only identity of a positional.
- descr: Unset | str | Text; stripped, non-empty when given.
- required: bool.
- dest: a Binding (or anything bind() accepts) over caller storage.
- type: converter callable; inferred from the destination's current value
  when omitted (int, float or str), str otherwise.
- arity: int >= 1 or a Dependency (see depends_on()).

Quick example:
    >>> from progopts.arguments import Value, uint
    >>> from progopts.bindings import Binding
    >>> settings = {"count": 0}
    >>> count = Value("c", "count", Binding(settings, "count"), type=uint)
    >>> buffer = ["-c", "5"]
    >>> count.consume(buffer)
    >>> settings["count"], buffer, count.consumed
    (5, [], True)
"""
import builtins
import functools
import numbers
import operator
import re
from collections.abc import MutableSequence
from typing import NamedTuple

from rich.text import Text

from .bindings import bind
from .faults import *
from .tokens import MARKER, looks_like_flag
from .utils import *


class Description(NamedTuple):
    """Read-only view of one descriptor, as consumed by the help renderer."""
    short: str | None
    long: str | None
    help_name: str
    usage: str
    synopsis: str
    descr: str | Text | None
    required: bool


def uint(text, /):
    """
    Convert a token to a non-negative integer.

    Raises ValueError for anything int() rejects and for negative numbers.
    """
    value = int(text)
    if value < 0:
        raise ValueError("expected a non-negative integer, got %r" % text)
    return value


class Dependency:
    """
    Count dependency edge of a dependent-arity vector.

    Two-phase binding
    - declaration: Dependency(name) only records the name of the source option
      (its short or long name, or the help name of a positional).
    - registration: bind(arena, index) returns a resolved edge holding an index
      into the append-only descriptor arena of the owning ProgramOptions.
    - consumption: count() dereferences the index and asks the source for its
      count projection.

    exact
    - True: the vector must receive exactly count values.
    - False: up to count values are accepted (positional vectors only).
    """
    __slots__ = ("_name", "_exact", "_arena", "_index")

    def __init__(self, name, /, exact=True, *, arena=Unset, index=Unset):
        if not isinstance(name, str):
            raise TypeError("dependency name must be a string")
        elif not (name := name.strip()):
            raise ValueError("dependency name cannot be empty")
        self._name = name
        self._exact = bool(exact)
        self._arena = arena
        self._index = index

    @property
    def name(self):
        return self._name

    @property
    def exact(self):
        return self._exact

    @property
    def resolved(self):
        return self._index is not Unset

    def bind(self, arena, index, /):
        """Return a copy of this edge resolved to arena[index]."""
        return type(self)(self._name, self._exact, arena=arena, index=index)

    def source(self):
        """Return the descriptor supplying the count."""
        if not self.resolved:
            raise ConfigurationError("count dependency %r was never resolved to an option" % self._name)
        return self._arena[self._index]

    def count(self):
        return self.source().count()

    def __repr__(self):
        return f"depends_on({self._name!r}, exact={self._exact!r})"


def depends_on(name, /, *, exact=True):
    """
    Declare that a vector's arity is read from the option named name.

    The source must be registered before the vector that depends on it.
    """
    return Dependency(name, exact)


class DescriptorType(type):
    """
    Metaclass giving descriptors introspectable, read-only metadata.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      mirroring the private "_{name}" field.
    - Derive __typename__ from the class name ("PositionalVector" →
      "positional-vector") for messages and reprs.
    - Provide stable __repr__/__rich_repr__ implementations.
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
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize fields shared by every descriptor.

    - help_name: non-empty string after trimming.
    - descr: Unset | str | Text, non-empty when a string; Unset becomes None.
    - required: coerced to bool.
    - dest: normalized through bind().
    """
    if not isinstance(help_name := metadata["help_name"], str):
        raise TypeError(f"{cls.__typename__} 'help_name' must be a string")
    elif not (help_name := help_name.strip()):
        raise ValueError(f"{cls.__typename__} 'help_name' cannot be empty")
    metadata["help_name"] = help_name

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    metadata["required"] = bool(metadata["required"])
    metadata["dest"] = bind(metadata["dest"])


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate short/long names of named descriptors and derive the
    default help name.

    - short: a single character other than "-" and whitespace.
    - long: r"[^\W_](-?[^\W_]+)*" (unicode letters allowed, no underscores,
      no leading dashes).
    - at least one of them is required.
    - help_name defaults to the long name, then to the short name.
    """
    short, long = metadata["short"], metadata["long"]

    if not isinstance(short, str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    if isinstance(short, str) and not re.fullmatch(r"[^\s-]", short):
        raise ValueError(f"{cls.__typename__} 'short' must be a single character other than '-'")

    if not isinstance(long, str | Unset):
        raise TypeError(f"{cls.__typename__} 'long' must be a string")
    if isinstance(long, str) and not re.fullmatch(r"[^\W_](-?[^\W_]+)*", long):
        raise ValueError(f"{cls.__typename__} 'long' must be a valid shell-style name without leading dashes")

    if not short and not long:
        raise TypeError(f"{cls.__typename__} must specify a short or a long name")

    metadata["help_name"] = coalesce(metadata["help_name"], long or short)


def _sanitize_parametric_metadata(cls, metadata, /, *, sequence=False):
    """
    Internal: validate the converter of value-bearing descriptors.

    When 'type' is Unset it is inferred from the destination: the current
    scalar value (or, for sequence destinations, their first element) decides
    between int, float and str; anything else falls back to str.
    """
    dest = metadata["dest"]

    if sequence and not isinstance(dest.peek(), MutableSequence):
        raise TypeError(f"{cls.__typename__} 'dest' must hold a mutable sequence")

    if (type := metadata["type"]) is Unset:
        sample = dest.peek()
        if sequence:
            sample = sample[0] if sample else Unset
        # bool is an int subclass but bool("false") is True; never infer it
        type = _inferable(sample) or str
    if not callable(type):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")
    metadata["type"] = type


def _inferable(sample, /):
    if isinstance(sample, bool):
        return None
    for candidate in (int, float, str):
        if type(sample) is candidate:
            return candidate
    return None


def _sanitize_arity(cls, metadata, /):
    """
    Internal: validate 'arity' (a positive int, or a Dependency).

    A zero or negative arity without a dependency is a ConfigurationError.
    """
    arity = metadata["arity"]
    if isinstance(arity, Dependency):
        return
    if not isinstance(arity, int) or isinstance(arity, bool):
        raise TypeError(f"{cls.__typename__} 'arity' must be an integer or a dependency")
    if arity < 1:
        raise ConfigurationError(f"{cls.__typename__} 'arity' must be positive when it does not depend on another option")


class Descriptor(metaclass=DescriptorType):
    """
    Shared base of every option descriptor.

    Identity and state
    - short/long/help_name/descr/required as sanitized at construction.
    - consumed: flips from False to True once the descriptor matched; never reset.
    - dest: non-owning Binding over the caller's storage.

    Subclasses provide match() and consume(); this base provides description,
    conversion and fault construction helpers.
    """
    __introspectable__ = (
        "short",
        "long",
        "help_name",
        "descr",
        "required",
        "consumed",
    )

    positional = False

    def _setup(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        self._consumed = False

    @property
    def name(self):
        """The name used in messages: "--long", "-s", or the positional help name."""
        if self.positional:
            return self._help_name
        return MARKER * 2 + self._long if self._long else MARKER + self._short

    def match(self, token, /):
        raise NotImplementedError

    def consume(self, buffer, /):
        raise NotImplementedError

    def count(self):
        """
        Project the parsed value onto an element count.

        Only scalar descriptors holding a non-negative integral value support
        this; everything else is a ConfigurationError.
        """
        raise ConfigurationError(
            f"{type(self).__typename__} {self.name!r} cannot supply an element count"
        )

    def usage(self):
        raise NotImplementedError

    def synopsis(self):
        raise NotImplementedError

    def describe(self):
        return Description(
            self._short,
            self._long,
            self._help_name,
            self.usage(),
            self.synopsis(),
            self._descr,
            self._required,
        )

    def _mark(self):
        self._consumed = True

    def _find(self, buffer, /):
        return next((index for index, token in enumerate(buffer) if self.match(token)), None)

    def _convert(self, token, /):
        try:
            return self._type(token)
        except (ValueError, TypeError) as exception:
            raise ConversionError(
                "cannot convert %r into a value for %s" % (token, self.name),
                title="conversion failed",
                code=FaultCode.CONVERSION_FAILED,
                hint="%s expects %s" % (self.name, _typename(self._type)),
                option=self,
                token=token,
            ) from exception


def _typename(type, /):
    return "a non-negative integer" if type is uint else "a value of type %s" % getattr(type, "__name__", repr(type))


def _project(self, /):
    value = self._dest.peek()
    if not isinstance(value, numbers.Integral) or isinstance(value, bool):
        raise ConfigurationError(
            f"{type(self).__typename__} {self.name!r} holds {value!r}, which cannot be used as an element count"
        )
    if value < 0:
        raise ConfigurationError(f"{type(self).__typename__} {self.name!r} holds a negative element count")
    return int(value)


class Named(Descriptor):
    """
    Base of descriptors matched by name ("-s" or "--long").
    """

    def match(self, token, /):
        return bool(
            (self._short and token == MARKER + self._short)
            or (self._long and token == MARKER * 2 + self._long)
        )

    def _bracket(self, fragment, /):
        return fragment if self._required else "[" + fragment + "]"

    def _metavar(self):
        return self._short if self._short else self._long[0].upper()

    def _flag(self):
        return MARKER + self._short if self._short else MARKER * 2 + self._long

    def usage(self):
        return self._bracket(self._flag())

    def synopsis(self):
        if self._short and self._long:
            return f"-{self._short} [ --{self._long} ]"
        return self.name


class Flag(Named):
    """
    Presence-only switch: zero value tokens, writes True to its destination.

    Only the first occurrence is consumed; a repeated flag is left in the
    buffer and reported as unrecognized.
    """
    __introspectable__ = Descriptor.__introspectable__ + ("dest",)

    def __init__(self, short=Unset, long=Unset, /, dest=Unset, descr=Unset, *, help_name=Unset, required=False):
        metadata = {
            "short": short,
            "long": long,
            "help_name": help_name,
            "descr": descr,
            "required": required,
            "dest": dest,
        }
        _sanitize_named_metadata(type(self), metadata)
        _sanitize_metadata(type(self), metadata)
        self._setup(metadata)

    def _payload(self):
        return True

    def consume(self, buffer, /):
        if (index := self._find(buffer)) is None:
            return
        del buffer[index]
        self._dest.set(self._payload())
        self._mark()


class AssignFlag(Flag):
    """
    Presence-only switch writing a caller-specified constant.

    Typical use is mode selection: several AssignFlags share one destination
    and each writes its own constant. Mutual exclusion is not enforced; when
    more than one is present, the one consumed last in resolution order wins.
    """
    __introspectable__ = Flag.__introspectable__ + ("assign",)

    def __init__(self, short=Unset, long=Unset, /, dest=Unset, assign=Unset, descr=Unset, *, help_name=Unset, required=False):
        if assign is Unset:
            raise TypeError(f"{type(self).__typename__} must specify the value to 'assign'")
        super().__init__(short, long, dest, descr, help_name=help_name, required=required)
        self._assign = assign

    def _payload(self):
        return self._assign


class Value(Named):
    """
    Named option taking exactly one following value token.

    Failures
    - MissingValueError: no token follows, or the following token is flag-shaped.
    - ConversionError: the converter rejects the token; dest is left untouched.
    """
    __introspectable__ = Descriptor.__introspectable__ + ("dest", "type")

    def __init__(self, short=Unset, long=Unset, /, dest=Unset, descr=Unset, *, help_name=Unset, type=Unset, required=False):
        metadata = {
            "short": short,
            "long": long,
            "help_name": help_name,
            "descr": descr,
            "required": required,
            "dest": dest,
            "type": type,
        }
        _sanitize_named_metadata(builtins.type(self), metadata)
        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_parametric_metadata(builtins.type(self), metadata)
        self._setup(metadata)

    def consume(self, buffer, /):
        if (index := self._find(buffer)) is None:
            return
        if index + 1 == len(buffer) or looks_like_flag(token := buffer[index + 1]):
            raise MissingValueError(
                "option %s expects a value" % self.name,
                title="missing value",
                code=FaultCode.MISSING_VALUE,
                hint="pass a value right after it (for example: %s <%s>)" % (buffer[index], self._help_name),
                option=self,
                token=buffer[index],
            )
        value = self._convert(token)
        del buffer[index:index + 2]
        self._dest.set(value)
        self._mark()

    count = _project

    def usage(self):
        return self._bracket(f"{self._flag()} {self._metavar()}")

    def synopsis(self):
        return f"{super().synopsis()} {self._help_name.upper()}"


class Vector(Named):
    """
    Named option taking a fixed number of following value tokens.

    At each appearance the run of consecutive non-flag tokens after the option
    must hold exactly 'arity' values; fewer or more is an ArityMismatchError.
    After every successful match the buffer is rescanned from the start, so
    the option may appear several times (each appearance with full arity).
    """
    __introspectable__ = Descriptor.__introspectable__ + ("dest", "type", "arity")

    def __init__(self, short=Unset, long=Unset, /, dest=Unset, arity=Unset, descr=Unset, *, help_name=Unset, type=Unset, required=False):
        metadata = {
            "short": short,
            "long": long,
            "help_name": help_name,
            "descr": descr,
            "required": required,
            "dest": dest,
            "type": type,
            "arity": arity,
        }
        _sanitize_named_metadata(builtins.type(self), metadata)
        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_parametric_metadata(builtins.type(self), metadata, sequence=True)
        _sanitize_arity(builtins.type(self), metadata)
        if isinstance(metadata["arity"], Dependency) and not isinstance(self, DependentVector):
            raise TypeError(f"{builtins.type(self).__typename__} 'arity' must be an integer (use a dependent vector)")
        self._setup(metadata)

    def _resolve_arity(self):
        return self._arity

    def consume(self, buffer, /):
        while (index := self._find(buffer)) is not None:
            end = index + 1
            while end < len(buffer) and not looks_like_flag(buffer[end]):
                end += 1
            if (available := end - index - 1) != (arity := self._resolve_arity()):
                raise ArityMismatchError(
                    "option %s expects exactly %d %s but got %d" % (
                        self.name, arity, pluralize("value", arity), available
                    ),
                    title="wrong number of values",
                    code=FaultCode.ARITY_MISMATCH,
                    hint="pass exactly %d %s after %s" % (arity, pluralize("value", arity), buffer[index]),
                    option=self,
                    token=buffer[index],
                )
            values = [self._convert(token) for token in buffer[index + 1:end]]
            del buffer[index:end]
            self._dest.extend(values)
            self._mark()

    def _repeat(self):
        return str(self._arity)

    def usage(self):
        head = self._flag()
        if isinstance(self._arity, int) and self._arity < 5:
            fragment = " ".join([head] + [self._metavar()] * self._arity)
        else:
            fragment = f"{head} {self._metavar()} {self._repeat()}x"
        return self._bracket(fragment)

    def synopsis(self):
        synopsis = f"{super().synopsis()} {self._help_name.upper()}"
        if not isinstance(self._arity, int) or self._arity > 1:
            synopsis += f" ({self._repeat()}x)"
        return synopsis


class DependentVector(Vector):
    """
    Vector whose arity is read, at consumption time, from the option named by
    its Dependency. The source must be a named option consumed earlier in the
    same pass.
    """

    def _resolve_arity(self):
        return self._arity.count()

    def _repeat(self):
        return self._arity.name + " "


class Positional(Descriptor):
    """
    Single positional value: the first remaining non-flag token.
    """
    __introspectable__ = Descriptor.__introspectable__ + ("dest", "type")

    positional = True

    def __init__(self, help_name=Unset, /, dest=Unset, descr=Unset, *, type=Unset, required=True):
        metadata = {
            "short": Unset,
            "long": Unset,
            "help_name": help_name,
            "descr": descr,
            "required": required,
            "dest": dest,
            "type": type,
        }
        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_parametric_metadata(builtins.type(self), metadata)
        self._setup(metadata)

    def match(self, token, /):
        return bool(token) and not looks_like_flag(token)

    def consume(self, buffer, /):
        if (index := self._find(buffer)) is None:
            return
        value = self._convert(buffer[index])
        del buffer[index]
        self._dest.set(value)
        self._mark()

    count = _project

    def usage(self):
        return self._help_name

    def synopsis(self):
        return self._help_name


class PositionalVector(Positional):
    """
    Positional collecting up to 'arity' non-flag tokens in buffer order.

    Flag-shaped tokens are skipped (not counted) and keep their place; the
    accepted values are removed and every other token keeps its relative
    order. Scanning stops as soon as the count is reached or a conversion
    fails. With exact=True, ending with fewer values than the arity is an
    ArityMismatchError.
    """
    __introspectable__ = Positional.__introspectable__ + ("arity", "exact")

    def __init__(self, help_name=Unset, /, dest=Unset, arity=Unset, descr=Unset, *, type=Unset, exact=False, required=True):
        metadata = {
            "short": Unset,
            "long": Unset,
            "help_name": help_name,
            "descr": descr,
            "required": required,
            "dest": dest,
            "type": type,
            "arity": arity,
            "exact": bool(exact),
        }
        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_parametric_metadata(builtins.type(self), metadata, sequence=True)
        _sanitize_arity(builtins.type(self), metadata)
        if isinstance(metadata["arity"], Dependency):
            if not isinstance(self, DependentPositionalVector):
                raise TypeError(f"{builtins.type(self).__typename__} 'arity' must be an integer (use a dependent positional vector)")
            metadata["exact"] = metadata["arity"].exact
        self._setup(metadata)

    def _resolve_arity(self):
        return self._arity

    def consume(self, buffer, /):
        arity = self._resolve_arity()
        accepted = []
        values = []
        for index, token in enumerate(buffer):
            if len(values) >= arity:
                break
            if not self.match(token):
                continue
            values.append(self._convert(token))
            accepted.append(index)

        if self._exact and len(values) != arity:
            raise ArityMismatchError(
                "%s requires exactly %d %s but got %d" % (
                    self._help_name, arity, pluralize("value", arity), len(values)
                ),
                title="wrong number of values",
                code=FaultCode.ARITY_MISMATCH,
                hint="pass exactly %d %s for %s" % (arity, pluralize("value", arity), self._help_name),
                option=self,
            )

        for index in reversed(accepted):
            del buffer[index]
        self._dest.extend(values)
        if values or arity == 0:
            self._mark()

    def count(self):
        return Descriptor.count(self)

    def _repeat(self):
        return str(self._arity)

    def synopsis(self):
        if not isinstance(self._arity, int) or self._arity > 1:
            return f"{self._help_name} ({self._repeat()}x)"
        return self._help_name


class DependentPositionalVector(PositionalVector):
    """
    PositionalVector whose arity is read from its Dependency just before
    consumption. exact follows the dependency (True unless stated otherwise).

    An unresolved dependency, or a source that cannot be projected to a count,
    is a ConfigurationError, distinct from any user-input failure.
    """

    def _resolve_arity(self):
        return self._arity.count()

    def _repeat(self):
        try:
            return self._arity.source().help_name + " "
        except ConfigurationError:
            return self._arity.name + " "

    def synopsis(self):
        return f"{self._help_name} ({self._repeat()}x)"


__all__ = (
    # Metadata
    "Description",
    "Dependency",
    "depends_on",
    "uint",

    # Descriptors
    "Descriptor",
    "Named",
    "Flag",
    "AssignFlag",
    "Value",
    "Vector",
    "DependentVector",
    "Positional",
    "PositionalVector",
    "DependentPositionalVector",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del DescriptorType
