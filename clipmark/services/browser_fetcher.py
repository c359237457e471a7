"""Playwright-based fetcher for JavaScript-rendered (dynamic) web pages."""

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from clipmark.exceptions import RenderProviderError
from clipmark.services.fetcher import MAX_CONTENT_SIZE, _validate_url, is_data_url

logger = logging.getLogger(__name__)

TIMEOUT_MS = 30_000  # 30 s in milliseconds


async def fetch_url_with_browser(url: str, *, wait_ms: int = 0) -> str:
    """Render *url* with a headless Chromium browser and return the full HTML.

    ``data:`` URLs are loaded directly; any other URL must pass the same
    scheme and SSRF checks as the plain HTTP fetcher.

    Raises:
        ValueError: if the URL fails SSRF / scheme validation.
        RenderProviderError: if the browser cannot start, load the page, or
            the rendered HTML exceeds MAX_CONTENT_SIZE.
    """
    if not is_data_url(url):
        _validate_url(url)

    try:
        async with async_playwright() as pw:
            browser = await pw.chromium.launch(
                headless=True,
                args=[
                    # --no-sandbox is required when running as root inside a container
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                ],
            )
            context = await browser.new_context()
            page = await context.new_page()
            try:
                await page.goto(url, wait_until="networkidle", timeout=TIMEOUT_MS)
                if wait_ms > 0:
                    await page.wait_for_timeout(wait_ms)
                html = await page.content()
            finally:
                await context.close()
                await browser.close()
    except PlaywrightError as exc:
        logger.warning("Browser rendering failed", extra={"url": url[:200], "error": str(exc)})
        raise RenderProviderError(f"Browser rendering failed: {exc}") from exc

    if len(html.encode()) > MAX_CONTENT_SIZE:
        raise RenderProviderError("Rendered HTML exceeds the maximum allowed size.")

    return html
