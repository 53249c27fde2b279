"""String processing utilities for the backup tools.

Object keys are stored in line-based logs where ``:`` separates the key from
its timestamp, so every key is percent-escaped before it is written.
"""

import re
from urllib.parse import quote, unquote

# Characters left as-is by the object store's URL escaping.
_KEY_SAFE = "/-_.~"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def escape_key(key: str) -> str:
    """Percent-escape an object key for URLs and ledger lines.

    ``quote`` already escapes ``:``; the explicit replace keeps the ledger
    separator unambiguous even if the safe set changes.

    Examples:
        escape_key("a b/c:d")  -> "a%20b/c%3Ad"
    """
    return quote(key, safe=_KEY_SAFE).replace(":", "%3A")


def unescape_key(text: str) -> str:
    """Reverse :func:`escape_key`.

    Raises:
        ValueError: If a ``%`` is not followed by two hex digits.
    """
    match = _BAD_ESCAPE.search(text)
    if match:
        raise ValueError(f"Invalid escape {text[match.start():match.start() + 3]!r} "
                         f"in key {text!r}")
    return unquote(text)


def strip_whitespace(s: str) -> str:
    """Remove every whitespace character (spaces, tabs, newlines) from *s*."""
    return "".join(s.split())
