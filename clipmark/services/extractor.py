import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag
from readability import Document
from readability.readability import Unparseable

from clipmark.config import DEFAULT_BASE_URI
from clipmark.exceptions import ExtractionError
from clipmark.models.article import Article
from clipmark.services.preprocessor import prepare_document

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": "80", "https": "443", "ws": "80", "wss": "443", "ftp": "21"}

# Keys the meta-tag merge must never write (body, side table and typed fields)
_RESERVED_KEYS = {"content", "math", "length", "keywords"}

_MEDIA_SRC_TAGS = ["img", "video", "audio", "source", "iframe"]

# Elements that make a body worth keeping even without text
_MEDIA_TAGS = ["img", "iframe", "video", "pre", "table"]

# Page chrome readability can leave behind when it falls back to <body>
_CHROME_TAGS = ["nav", "aside", "button", "dialog", "noscript", "template"]

_HIDDEN_STYLE_RE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


def _normalize_url(base_url: str, href: str) -> str:
    """Return an absolute URL, resolving *href* against *base_url*."""
    return urljoin(base_url, href)


def _meta_content(soup: BeautifulSoup, *candidates: str) -> str:
    """Return the first non-empty ``content`` among meta tags named *candidates*."""
    for name in candidates:
        for attr in ("name", "property"):
            meta = soup.find("meta", attrs={attr: name})
            if meta and meta.get("content"):
                return str(meta["content"]).strip()
    return ""


def _extract_page_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    if title_tag:
        return title_tag.get_text(strip=True)
    return ""


def _extract_byline(soup: BeautifulSoup) -> str:
    byline = _meta_content(soup, "author", "dc:creator", "article:author")
    if byline:
        return byline
    node = soup.select_one('[rel="author"], [itemprop="author"], .byline')
    if node:
        return node.get_text(" ", strip=True)
    return ""


def _first_paragraph(content: Tag) -> str:
    for paragraph in content.find_all("p"):
        text = paragraph.get_text(strip=True)
        if text:
            return text
    return ""


def _resolve_base_uri(soup: BeautifulSoup, base_uri: str) -> str:
    base_tag = soup.find("base", href=True)
    if base_tag:
        return _normalize_url(base_uri, str(base_tag["href"]))
    return base_uri


def _absolutize(content: Tag, base_uri: str) -> None:
    """Rewrite relative link and media URLs inside *content* against *base_uri*."""
    for a in content.find_all("a", href=True):
        href = str(a["href"]).strip()
        # readability blanks javascript: links
        if not href or href.lower().startswith("javascript:"):
            a.unwrap()
        elif not href.startswith("#") and not href.startswith("mailto:"):
            a["href"] = _normalize_url(base_uri, href)
    for node in content.find_all(_MEDIA_SRC_TAGS, src=True):
        src = str(node["src"]).strip()
        if not src.startswith("data:"):
            node["src"] = _normalize_url(base_uri, src)


def url_components(url: str) -> Dict[str, str]:
    """Split *url* the way a browser ``URL`` object exposes it."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    hostname = parts.hostname or ""
    port = str(parts.port) if parts.port is not None else ""
    if port == _DEFAULT_PORTS.get(scheme):
        port = ""
    host = f"{hostname}:{port}" if port else hostname
    origin = f"{scheme}://{host}" if host else "null"
    return {
        "hash": f"#{parts.fragment}" if parts.fragment else "",
        "host": host,
        "origin": origin,
        "hostname": hostname,
        "pathname": parts.path or ("/" if host else ""),
        "port": port,
        "protocol": f"{scheme}:" if scheme else "",
        "search": f"?{parts.query}" if parts.query else "",
    }


def _extract_keywords(head: Tag) -> Optional[List[str]]:
    meta = head.find("meta", attrs={"name": "keywords"})
    if meta is None or meta.get("content") is None:
        return None
    return [keyword.strip() for keyword in str(meta["content"]).split(",")]


def _meta_pairs(head: Tag) -> List[Tuple[str, str]]:
    pairs = []
    for meta in head.find_all("meta", attrs={"content": True}):
        key = meta.get("name") or meta.get("property")
        value = meta.get("content")
        if key and value:
            pairs.append((str(key), str(value)))
    return pairs


def _merge_meta_tags(pairs: List[Tuple[str, str]], fields: Dict[str, object]) -> None:
    """Copy ``<meta>`` name/property → content pairs, first writer wins."""
    for key, value in pairs:
        if key in _RESERVED_KEYS:
            continue
        if not fields.get(key):
            fields[key] = value


def _drop_hidden(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(True):
        if not isinstance(tag, Tag) or tag.decomposed:
            continue
        if tag.has_attr("hidden") or _HIDDEN_STYLE_RE.search(tag.get("style", "")):
            tag.decompose()


def _readable_content(soup: BeautifulSoup) -> Tuple[Optional[Tag], str]:
    """Run readability over the prepared document.

    Returns:
        (container, title) where *container* holds the article body, or is
        None when nothing readable is left once page chrome is removed.
    """
    try:
        document = Document(str(soup))
        title = document.short_title()
        summary = document.summary(html_partial=True)
    except Unparseable as exc:
        raise ExtractionError(f"The document could not be parsed: {exc}") from exc

    container = BeautifulSoup(summary, "lxml").body
    if container is None:
        return None, title
    for tag in container.find_all(_CHROME_TAGS):
        tag.decompose()
    if not container.get_text(strip=True) and container.find(_MEDIA_TAGS) is None:
        return None, title
    return container, title


def extract_article(html: str, base_uri: str = DEFAULT_BASE_URI) -> Article:
    """Turn *html* into an :class:`Article`.

    The document is normalised (math, code languages, heading classes),
    readability isolates the article body, and the result is enriched with
    URL components and page metadata read from the original ``<head>``.

    Raises:
        ExtractionError: if the document is empty or has no readable content.
    """
    if not html or not html.strip():
        raise ExtractionError("The document is empty.")

    soup, math = prepare_document(html)
    base_uri = _resolve_base_uri(soup, base_uri)

    root = soup.find("html")
    fields: Dict[str, object] = {
        "byline": _extract_byline(soup),
        "excerpt": _meta_content(soup, "description", "og:description", "twitter:description"),
        "siteName": _meta_content(soup, "og:site_name"),
        "lang": root.get("lang", "") if root else "",
        "dir": root.get("dir", "") if root else "",
        "publishedTime": _meta_content(soup, "article:published_time"),
        "baseURI": base_uri,
        "pageTitle": _extract_page_title(soup),
    }
    fields.update(url_components(base_uri))

    keywords = None
    meta_pairs: List[Tuple[str, str]] = []
    if soup.head is not None:
        keywords = _extract_keywords(soup.head)
        meta_pairs = _meta_pairs(soup.head)
    meta_title = _meta_content(soup, "og:title", "twitter:title")
    heading = soup.find("h1")
    heading_text = heading.get_text(strip=True) if heading else ""

    _drop_hidden(soup)
    main, readable_title = _readable_content(soup)
    if main is None:
        logger.warning("No main content found", extra={"base_uri": base_uri})
        raise ExtractionError("No readable content was found in the document.")

    _absolutize(main, base_uri)
    text_content = main.get_text()
    fields["title"] = meta_title or readable_title or heading_text
    fields["content"] = main.decode_contents()
    fields["textContent"] = text_content
    fields["length"] = len(text_content)
    if not fields["excerpt"]:
        fields["excerpt"] = _first_paragraph(main)
    fields["keywords"] = keywords
    _merge_meta_tags(meta_pairs, fields)
    fields["math"] = math

    logger.debug("Extracted article", extra={"base_uri": base_uri, "length": fields["length"]})
    return Article.model_validate(fields)
