"""
Token shape predicates and the token preprocessor.

Later stages assume one token is either one flag marker or one value. The
preprocessor establishes that by splitting "short flag glued to its value"
tokens (e.g. "-c5" → "-c", "5") before any descriptor sees the buffer.
"""
import logging

logger = logging.getLogger(__name__)

MARKER = "-"


def looks_like_flag(token, /):
    """Whether a token starts with the flag marker (and so cannot be a value)."""
    return token.startswith(MARKER)


def split_combined(arguments, descriptors, /):
    """
    Build the token buffer from the raw arguments (program name excluded).

    A token is split in two when its first two characters are exactly
    "-<short>" for one of the given named descriptors and it is longer than
    two characters. Tokens are otherwise copied as-is. Never fails: a bad
    combination surfaces later as an ordinary consumption failure.
    """
    shorts = {descriptor.short for descriptor in descriptors if descriptor.short}
    buffer = []
    for token in arguments:
        if (
            len(token) > 2
            and token[0] == MARKER
            and token[1] != MARKER
            and token[1] in shorts
        ):
            logger.debug("splitting combined token %r", token)
            buffer.append(token[:2])
            buffer.append(token[2:])
        else:
            buffer.append(token)
    return buffer


__all__ = (
    "MARKER",
    "looks_like_flag",
    "split_combined",
)
