"""DOM normalisation passes that run before boilerplate extraction.

The parsed tree is private to one call.  Math nodes are recorded in a side
table keyed by a freshly generated element id, and code blocks are tagged
with a ``code-lang-<language>`` id so the Markdown converter can emit a
fenced block without re-reading class names.
"""

import re
import uuid
from typing import Dict, Optional, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag

from clipmark.models.article import MathInfo

CODE_LANG_PREFIX = "code-lang-"
LINE_BREAK_TAG = "br-keep"

_HIGHLIGHT_LANG_RE = re.compile(r"highlight-(?:text|source)-([a-z0-9]+)")
_PRISM_LANG_RE = re.compile(r"language-([a-z0-9]+)")

MathTable = Dict[str, MathInfo]


def _class_string(tag: Tag) -> str:
    return " ".join(tag.get("class", []))


def _first_child(tag: Tag) -> Optional[Tag]:
    """Return the first child node, skipping whitespace-only text."""
    for child in tag.children:
        if isinstance(child, NavigableString) and not child.strip():
            continue
        return child if isinstance(child, Tag) else None
    return None


def _store_math(tag: Tag, info: MathInfo, math: MathTable) -> None:
    element_id = str(uuid.uuid4())
    tag["id"] = element_id
    math[element_id] = info


def _collect_mathjax_scripts(soup: BeautifulSoup, body: Tag, math: MathTable) -> None:
    # Scripts are pruned with the rest of the page chrome, so the TeX moves
    # to a plain element that carries the math id.
    for script in body.select('script[id^="MathJax-Element-"]'):
        script_type = script.get("type")
        inline = "mode=display" not in script_type if script_type else False
        tex = script.get_text()
        replacement = soup.new_tag("span" if inline else "div")
        replacement.string = tex
        script.replace_with(replacement)
        _store_math(replacement, MathInfo(tex=tex, inline=inline), math)


def _replace_latex_markers(soup: BeautifulSoup, body: Tag, math: MathTable) -> None:
    for marker in body.select("[markdownload-latex]"):
        tex = marker.get("markdownload-latex", "")
        inline = marker.get("display") != "true"
        replacement = soup.new_tag("i" if inline else "p")
        replacement.string = tex
        marker.replace_with(replacement)
        _store_math(replacement, MathInfo(tex=tex, inline=inline), math)


def _collect_katex(body: Tag, math: MathTable) -> None:
    for node in body.select(".katex-mathml"):
        annotation = node.find("annotation")
        if annotation is None:
            continue
        _store_math(node, MathInfo(tex=annotation.get_text(), inline=True), math)


def _tag_code_languages(body: Tag) -> None:
    for container in body.select('[class*="highlight-text"], [class*="highlight-source"]'):
        match = _HIGHLIGHT_LANG_RE.search(_class_string(container))
        first = _first_child(container)
        if match and first is not None and first.name == "pre":
            first["id"] = CODE_LANG_PREFIX + match.group(1)

    for node in body.select('[class*="language-"]'):
        match = _PRISM_LANG_RE.search(_class_string(node))
        if match:
            node["id"] = CODE_LANG_PREFIX + match.group(1)


def _keep_preformatted_breaks(soup: BeautifulSoup, body: Tag) -> None:
    for br in body.select("pre br"):
        br.replace_with(soup.new_tag(LINE_BREAK_TAG))


def _tag_plain_codehilite(body: Tag) -> None:
    for pre in body.select(".codehilite > pre"):
        first = _first_child(pre)
        if (first is None or first.name != "code") and "language" not in _class_string(pre):
            pre["id"] = CODE_LANG_PREFIX + "text"


def _strip_presentation_classes(soup: BeautifulSoup, body: Tag) -> None:
    for heading in body.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
        if "class" in heading.attrs:
            del heading["class"]
    root = soup.find("html")
    if root is not None and "class" in root.attrs:
        del root["class"]


def prepare_document(html: str) -> Tuple[BeautifulSoup, MathTable]:
    """Parse *html* and run the normalisation passes.

    Returns:
        (soup, math) where *math* maps generated element ids to their TeX.
    """
    soup = BeautifulSoup(html, "lxml")
    math: MathTable = {}

    body = soup.body
    if body is None:
        return soup, math

    _collect_mathjax_scripts(soup, body, math)
    _replace_latex_markers(soup, body, math)
    _collect_katex(body, math)
    _tag_code_languages(body)
    _keep_preformatted_breaks(soup, body)
    _tag_plain_codehilite(body)
    _strip_presentation_classes(soup, body)

    return soup, math
