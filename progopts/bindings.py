"""
Destination bindings: non-owning handles over caller storage.

A descriptor never owns the value it produces. It is given a Binding at
registration and writes through it when its match succeeds. The storage
belongs to the caller and must outlive the call to ProgramOptions.process().

Shapes
- Binding(owner, "name"): attribute of an object (a dataclass, a namespace, ...)
- Binding(owner, key): item of a mutable mapping (a plain dict, ...)
- Binding(sequence): a mutable sequence used directly; vector descriptors
  extend it in place, it cannot be rebound.

Examples
    >>> class Settings:
    ...     count = 0
    >>> settings = Settings()
    >>> Binding(settings, "count").set(5)
    >>> settings.count
    5
    >>> values = []
    >>> Binding(values).extend(["a", "b"])
    >>> values
    ['a', 'b']
"""
from collections.abc import MutableMapping, MutableSequence

from .utils import Unset


class Binding:
    """
    Handle over one slot of caller storage.

    Reads and writes always go back to the owner, so changes made by the caller
    between registration and processing are honored (for instance, the current
    value of a count source).
    """
    __slots__ = ("_owner", "_key")

    def __init__(self, owner, key=Unset, /):
        if key is Unset and not isinstance(owner, MutableSequence):
            raise TypeError("binding without a key must wrap a mutable sequence")
        if key is not Unset and not isinstance(owner, MutableMapping) and not isinstance(key, str):
            raise TypeError("binding key must be an attribute name for non-mapping owners")
        self._owner = owner
        self._key = key

    @property
    def owner(self):
        return self._owner

    @property
    def key(self):
        return self._key

    def get(self):
        """Return the current value of the slot (AttributeError/KeyError when absent)."""
        if self._key is Unset:
            return self._owner
        if isinstance(self._owner, MutableMapping):
            return self._owner[self._key]
        return getattr(self._owner, self._key)

    def set(self, value, /):
        """Overwrite the slot."""
        if self._key is Unset:
            raise TypeError("a bare sequence binding cannot be rebound")
        if isinstance(self._owner, MutableMapping):
            self._owner[self._key] = value
        else:
            setattr(self._owner, self._key, value)

    def extend(self, values, /):
        """Append values, in order, to the sequence held by the slot."""
        target = self.get()
        if not isinstance(target, MutableSequence):
            raise TypeError("binding target is not a mutable sequence")
        target.extend(values)

    def peek(self, default=Unset, /):
        """Like get(), but return default when the slot does not exist yet."""
        try:
            return self.get()
        except (AttributeError, KeyError):
            return default

    def __repr__(self):
        if self._key is Unset:
            return f"Binding({type(self._owner).__name__})"
        return f"Binding({type(self._owner).__name__}, {self._key!r})"


def bind(dest, key=Unset, /):
    """
    Normalize a destination into a Binding.

    Accepts an existing Binding (returned unchanged), an (owner, key) pair
    passed as two arguments or as a tuple, or a bare mutable sequence.
    """
    if isinstance(dest, Binding):
        if key is not Unset:
            raise TypeError("bind() cannot re-key an existing binding")
        return dest
    if key is Unset and isinstance(dest, tuple):
        if len(dest) != 2:
            raise TypeError("bind() tuple destination must be an (owner, key) pair")
        return Binding(*dest)
    return Binding(dest, key)


__all__ = (
    "Binding",
    "bind",
)
