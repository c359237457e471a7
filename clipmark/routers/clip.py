import logging
import uuid
from typing import Any, Dict

import httpx
from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from clipmark.config import CLIP_RATE_LIMIT, CONVERT_RATE_LIMIT, DEFAULT_BASE_URI
from clipmark.exceptions import ConversionError, ExtractionError, InputError, RenderProviderError
from clipmark.models.request import ClipRequest, ConvertRequest
from clipmark.models.response import ClipResponse
from clipmark.services.browser_fetcher import fetch_url_with_browser
from clipmark.services.clipper import convert_article_to_markdown
from clipmark.services.extractor import extract_article
from clipmark.services.fetcher import fetch_url, is_data_url
from clipmark.services.options import resolve_options
from clipmark.services.store import save_result

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/clip", response_model=ClipResponse, summary="Clip a web page to Markdown")
@limiter.limit(CLIP_RATE_LIMIT)
async def clip(request: Request, body: ClipRequest) -> ClipResponse:
    """Fetch *url*, extract the article, and return it as Markdown.

    With the ``puppeteer`` option (or ``USE_PUPPETEER=true``) the page is
    rendered in headless Chromium first; if rendering fails the plain HTTP
    fetch is used instead.
    """
    url = body.url.strip()
    logger.info("Clip request received", extra={"url": url[:200]})

    if not (is_data_url(url) or url.lower().startswith(("http://", "https://"))):
        raise HTTPException(status_code=400, detail="URL must use http, https or data.")

    options = resolve_options(body.options)
    html = None
    if options.puppeteer:
        try:
            html = await _fetch_with_browser(url)
        except RenderProviderError as exc:
            logger.warning("Browser rendering failed for %s (%s) – using HTTP fetch", url[:200], exc)
    if html is None:
        html = await _fetch_with_http(url)

    base_uri = DEFAULT_BASE_URI if is_data_url(url) else url
    return await _clip_html(html, base_uri, body.options)


@router.post("/convert", response_model=ClipResponse, summary="Convert supplied HTML to Markdown")
@limiter.limit(CONVERT_RATE_LIMIT)
async def convert(request: Request, body: ConvertRequest) -> ClipResponse:
    """Run the clipping pipeline on HTML the caller already has."""
    base_uri = body.url or DEFAULT_BASE_URI
    if not base_uri.lower().startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="URL must use http or https.")
    return await _clip_html(body.html, base_uri, body.options)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _clip_html(html: str, base_uri: str, overrides: Dict[str, Any]) -> ClipResponse:
    try:
        article = extract_article(html, base_uri)
    except ExtractionError as exc:
        logger.warning("Extraction failed for %s: %s", base_uri, exc)
        raise HTTPException(status_code=422, detail=str(exc))

    document_id = str(uuid.uuid4())
    try:
        result = await convert_article_to_markdown(article, overrides, document_id=document_id)
    except (ConversionError, InputError) as exc:
        logger.warning("Invalid conversion options: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    save_result(document_id, result.markdown)

    return ClipResponse(
        id=document_id,
        title=result.title,
        markdown=result.markdown,
        image_list=result.image_list,
        failed_images=result.failed_images,
    )


async def _fetch_with_http(url: str) -> str:
    """Fetch *url* via plain HTTP and propagate errors as HTTP exceptions."""
    try:
        return await fetch_url(url)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url[:200], exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except httpx.TimeoutException:
        logger.error("Timeout fetching URL: %s", url)
        raise HTTPException(status_code=504, detail="The target URL timed out.")
    except httpx.HTTPStatusError as exc:
        logger.error("HTTP error fetching URL %s: %s", url, exc)
        raise HTTPException(
            status_code=502, detail=f"Target URL returned HTTP {exc.response.status_code}."
        )
    except (httpx.RequestError, RuntimeError) as exc:
        logger.error("Error fetching URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))


async def _fetch_with_browser(url: str) -> str:
    """Render *url* in a headless browser; blocked URLs become a 400."""
    try:
        return await fetch_url_with_browser(url)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL (browser): %s – %s", url[:200], exc)
        raise HTTPException(status_code=400, detail=str(exc))
