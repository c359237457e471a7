"""HTML → Markdown conversion driven by :class:`~clipmark.models.options.Options`.

:class:`ClipConverter` extends markdownify with the choices a clip can
configure (heading style, fences, delimiters, link and image styles), GFM
task lists, math nodes recorded by the preprocessor, and a fixed set of
elements kept as raw HTML because Markdown has no equivalent for them.
"""

from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, urljoin

from markdownify import ATX, UNDERLINED, MarkdownConverter, abstract_inline_conversion, chomp

from clipmark.models.article import MathInfo
from clipmark.models.options import Options
from clipmark.services.normalizer import sanitize_filename
from clipmark.services.preprocessor import CODE_LANG_PREFIX

KEEP_TAGS = ("iframe", "sub", "sup", "u", "ins", "del", "small", "big")

# Marker extension for images whose URL carries none; replaced once the
# response content type is known.
UNKNOWN_EXTENSION = ".idunno"

HEADING_STYLES = {"atx": ATX, "setext": UNDERLINED}
CODE_BLOCK_STYLES = ("fenced", "indented")
LINK_STYLES = ("inlined", "referenced")
LINK_REFERENCE_STYLES = ("full", "collapsed", "shortcut")
IMAGE_STYLES = ("markdown", "base64", "noImage", "originalSource", "obsidian", "obsidian-nofolder")


def image_filename(src: str, image_prefix: str, disallowed_chars: Optional[str]) -> str:
    """Derive the local filename an image is saved under."""
    query = src.find("?")
    filename = src[src.rfind("/") + 1:query if query > 0 else len(src)]
    if ";base64," in filename:
        filename = "image." + filename[:filename.find(";")]
    if "." not in filename:
        filename += UNKNOWN_EXTENSION
    return image_prefix + (sanitize_filename(filename, disallowed_chars) or "image" + UNKNOWN_EXTENSION)


def image_reference(filename: str, image_style: str) -> str:
    """Return the link target the Markdown uses for a downloaded image."""
    if image_style == "obsidian-nofolder":
        return filename.rsplit("/", 1)[-1]
    if image_style.startswith("obsidian"):
        return filename
    return "/".join(quote(segment) for segment in filename.split("/"))


def _deduplicate(filename: str, taken: List[str]) -> str:
    if filename not in taken:
        return filename
    stem, dot, extension = filename.rpartition(".")
    counter = 1
    while True:
        candidate = f"{stem} ({counter}){dot}{extension}"
        if candidate not in taken:
            return candidate
        counter += 1


class ClipConverter(MarkdownConverter):
    """markdownify converter configured from clip options.

    After :meth:`convert` returns, :attr:`image_list` maps every image source
    that has to be downloaded to its local filename.
    """

    def __init__(
        self,
        options: Options,
        base_uri: str = "",
        image_prefix: str = "",
        math: Optional[Dict[str, MathInfo]] = None,
    ):
        escape = options.turndown_escape
        super().__init__(
            heading_style=HEADING_STYLES[options.heading_style],
            bullets=options.bullet_list_marker,
            escape_asterisks=escape,
            escape_underscores=escape,
            escape_misc=escape,
            table_infer_header=True,
            bs4_options="lxml",
            hr=options.hr,
            em_delimiter=options.em_delimiter,
            strong_delimiter=options.strong_delimiter,
        )
        self.clip_options = options
        self.base_uri = base_uri
        self.image_prefix = image_prefix
        self.math = math or {}
        self.image_list: Dict[str, str] = {}
        self._references: List[str] = []

    # -- document ---------------------------------------------------------

    def convert_soup(self, soup):
        self._references = []
        markdown = super().convert_soup(soup)
        if self._references:
            markdown = markdown.rstrip("\n") + "\n\n" + "\n".join(self._references)
        return markdown

    def process_tag(self, node, parent_tags=None):
        # KaTeX renders every formula twice; the MathML copy carries the TeX
        if "katex-html" in (node.get("class") or []):
            return ""
        info = self.math.get(node.get("id", "")) if node.name else None
        if info is None:
            return super().process_tag(node, parent_tags=parent_tags)
        tex = info.tex.strip()
        if info.inline:
            return "$%s$" % tex
        return "\n\n$$\n%s\n$$\n\n" % tex

    # -- inline -----------------------------------------------------------

    convert_em = abstract_inline_conversion(lambda self: self.options["em_delimiter"])
    convert_i = convert_em
    convert_strong = abstract_inline_conversion(lambda self: self.options["strong_delimiter"])
    convert_b = convert_strong

    def _keep_html(self, el, text, parent_tags):
        return str(el)

    convert_iframe = convert_sub = convert_sup = convert_u = _keep_html
    convert_ins = convert_del = convert_small = convert_big = _keep_html

    def convert_br_keep(self, el, text, parent_tags):
        return "\n"

    def convert_input(self, el, text, parent_tags):
        if el.get("type") == "checkbox" and el.find_parent("li") is not None:
            return "[x] " if el.has_attr("checked") else "[ ] "
        return ""

    def _reference(self, label: str, url: str, title: str) -> str:
        title_part = ' "%s"' % title.replace('"', '\\"') if title else ""
        style = self.clip_options.link_reference_style
        if style == "collapsed":
            self._references.append("[%s]: %s%s" % (label, url, title_part))
            return "[%s][]" % label
        if style == "shortcut":
            self._references.append("[%s]: %s%s" % (label, url, title_part))
            return "[%s]" % label
        index = len(self._references) + 1
        self._references.append("[%d]: %s%s" % (index, url, title_part))
        return "[%s][%d]" % (label, index)

    def convert_a(self, el, text, parent_tags):
        if self.clip_options.link_style != "referenced" or "_noformat" in parent_tags:
            return super().convert_a(el, text, parent_tags)
        prefix, suffix, text = chomp(text)
        if not text:
            return ""
        href = el.get("href")
        if not href:
            return prefix + text + suffix
        return prefix + self._reference(text, href, el.get("title") or "") + suffix

    def convert_img(self, el, text, parent_tags):
        style = self.clip_options.image_style
        if style == "noImage":
            return ""

        alt = el.get("alt") or ""
        title = el.get("title") or ""
        src = el.get("src") or ""
        if src and self.base_uri and not src.startswith("data:"):
            src = urljoin(self.base_uri, src)

        if src and self.clip_options.download_images:
            filename = self.image_list.get(src)
            if filename is None:
                filename = _deduplicate(
                    image_filename(src, self.image_prefix, self.clip_options.disallowed_chars),
                    list(self.image_list.values()),
                )
                self.image_list[src] = filename
            if style not in ("originalSource", "base64"):
                src = image_reference(filename, style)

        if style.startswith("obsidian"):
            return "![[%s]]" % src
        if not src:
            return ""
        if self.clip_options.image_ref_style == "referenced":
            return "!" + self._reference(alt, src, title)
        title_part = ' "%s"' % title.replace('"', '\\"') if title else ""
        return "![%s](%s%s)" % (alt, src, title_part)

    # -- blocks -----------------------------------------------------------

    def convert_hr(self, el, text, parent_tags):
        return "\n\n%s\n\n" % self.options["hr"]

    def _code_language(self, el) -> str:
        candidates = [el] + el.find_all("code", limit=1)
        for node in candidates:
            element_id = node.get("id") or ""
            if element_id.startswith(CODE_LANG_PREFIX):
                return element_id[len(CODE_LANG_PREFIX):]
        return ""

    def convert_pre(self, el, text, parent_tags):
        if not text:
            return ""
        code = text.strip("\n")
        if self.clip_options.code_block_style == "indented":
            return "\n\n%s\n\n" % "\n".join("    " + line for line in code.split("\n"))
        fence = self.clip_options.fence
        return "\n\n%s%s\n%s\n%s\n\n" % (fence, self._code_language(el), code, fence)


def validate_options(options: Options) -> List[str]:
    """Return a description of every style choice the converter cannot honour."""
    problems = []
    checks = (
        ("headingStyle", options.heading_style, tuple(HEADING_STYLES)),
        ("codeBlockStyle", options.code_block_style, CODE_BLOCK_STYLES),
        ("linkStyle", options.link_style, LINK_STYLES),
        ("linkReferenceStyle", options.link_reference_style, LINK_REFERENCE_STYLES),
        ("imageStyle", options.image_style, IMAGE_STYLES),
        ("imageRefStyle", options.image_ref_style, LINK_STYLES),
    )
    for name, value, allowed in checks:
        if value not in allowed:
            problems.append(f"{name} must be one of {', '.join(allowed)} (got {value!r})")
    if not options.fence:
        problems.append("fence must not be empty")
    if not options.bullet_list_marker:
        problems.append("bulletListMarker must not be empty")
    return problems


def convert_html(
    content: str,
    options: Options,
    *,
    base_uri: str = "",
    image_prefix: str = "",
    math: Optional[Dict[str, MathInfo]] = None,
) -> Tuple[str, Dict[str, str]]:
    """Convert an article body to Markdown.

    Returns:
        (markdown, image_list) where *image_list* maps image sources to the
        local filenames referenced in the Markdown.
    """
    converter = ClipConverter(options, base_uri=base_uri, image_prefix=image_prefix, math=math)
    markdown = converter.convert(content)
    return markdown, converter.image_list
