"""Filename normalisation: strip characters that cannot appear in a path segment."""

import re
from typing import Optional

# Characters rejected by at least one common filesystem
_ILLEGAL_RE = re.compile(r'[/?<>\\:*|"]')
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_filename(text: Optional[str], disallowed_chars: Optional[str] = None) -> Optional[str]:
    """Return *text* with filesystem-illegal and caller-disallowed characters removed.

    Non-breaking spaces become plain spaces and whitespace runs collapse to a
    single space.  Empty or missing values are returned unchanged.
    """
    if not text:
        return text

    name = _ILLEGAL_RE.sub("", str(text))
    if disallowed_chars:
        for char in disallowed_chars:
            name = re.sub(re.escape(char), "", name)

    name = name.replace("\u00a0", " ")
    return _WHITESPACE_RE.sub(" ", name).strip()


def sanitize_path(path: str, disallowed_chars: Optional[str] = None) -> str:
    """Sanitize every ``/``-separated segment of *path* independently."""
    return "/".join(sanitize_filename(segment, disallowed_chars) for segment in path.split("/"))
