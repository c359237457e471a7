"""Placeholder templates for front/back matter, titles and image paths.

A template is parsed into literal runs and ``{...}`` placeholder nodes, and
every node is evaluated once against the article metadata:

``{field}`` / ``{field:transform}``
    An article field, optionally re-cased (see :data:`TRANSFORMS`).

``{date:FORMAT}``
    The time of the call rendered with moment-style tokens
    (``YYYY-MM-DDTHH:mm:ss``).  Every date placeholder of one call shares the
    same instant.

``{keywords}`` / ``{keywords:SEPARATOR}``
    The page keywords joined with *SEPARATOR*; escape sequences such as
    ``\\n`` in the separator are honoured.

Any other placeholder expands to nothing.  Substituted values are never
scanned again, so a title containing braces is emitted as is.
"""

import json
import re
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional, Union

from clipmark.models.article import Article
from clipmark.services.dates import format_moment, local_now
from clipmark.services.normalizer import sanitize_filename

_PLACEHOLDER_RE = re.compile(r"\{(.*?)\}")
_SPACE_THEN_CHAR_RE = re.compile(r" .")


def _capitalize_words(value: str) -> str:
    return _SPACE_THEN_CHAR_RE.sub(lambda m: m.group(0).strip().upper(), value)


def _camel(value: str) -> str:
    value = _capitalize_words(value)
    return value[:1].lower() + value[1:]


def _pascal(value: str) -> str:
    value = _capitalize_words(value)
    return value[:1].upper() + value[1:]


TRANSFORMS: Dict[str, Callable[[str], str]] = {
    "lower": str.lower,
    "upper": str.upper,
    "kebab": lambda s: s.replace(" ", "-").lower(),
    "mixed-kebab": lambda s: s.replace(" ", "-"),
    "snake": lambda s: s.replace(" ", "_").lower(),
    "mixed_snake": lambda s: s.replace(" ", "_"),
    "obsidian-cal": lambda s: re.sub(r"-{2,}", "-", s.replace(" ", "-")),
    "camel": _camel,
    "pascal": _pascal,
}


class Placeholder(NamedTuple):
    expression: str


Node = Union[str, Placeholder]


def parse_template(template: str) -> List[Node]:
    """Split *template* into literal strings and :class:`Placeholder` nodes."""
    nodes: List[Node] = []
    position = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        if match.start() > position:
            nodes.append(template[position:match.start()])
        nodes.append(Placeholder(match.group(1)))
        position = match.end()
    if position < len(template):
        nodes.append(template[position:])
    return nodes


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _unescape(separator: str) -> str:
    try:
        return json.loads('"%s"' % separator.replace('"', '\\"'))
    except ValueError:
        return separator


class _Evaluator:
    def __init__(self, article: Article, disallowed_chars: Optional[str], now: datetime):
        self.keywords = article.keywords or []
        self.now = now
        self.fields: Dict[str, str] = {}
        for key, value in article.metadata().items():
            text = _stringify(value)
            if text and disallowed_chars:
                text = sanitize_filename(text, disallowed_chars)
            self.fields[key] = text

    def evaluate(self, expression: str) -> str:
        if expression in self.fields:
            return self.fields[expression]

        key, _, transform = expression.rpartition(":")
        if key in self.fields and transform in TRANSFORMS:
            return TRANSFORMS[transform](self.fields[key])

        name, _, argument = expression.partition(":")
        if name == "date" and argument:
            return format_moment(self.now, argument)
        if name == "keywords":
            return _unescape(argument).join(self.keywords)
        return ""


def expand_template(
    template: str,
    article: Article,
    disallowed_chars: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Return *template* with every placeholder resolved against *article*.

    When *disallowed_chars* is given, field values are passed through
    :func:`sanitize_filename` before any case transform is applied.
    """
    if not template:
        return template or ""

    evaluator = _Evaluator(article, disallowed_chars, now or local_now())
    return "".join(
        evaluator.evaluate(node.expression) if isinstance(node, Placeholder) else node
        for node in parse_template(template)
    )
