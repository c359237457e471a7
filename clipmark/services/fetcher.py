import base64
import ipaddress
import logging
import socket
from typing import Tuple
from urllib.parse import unquote_to_bytes, urljoin, urlparse

import httpx

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
TIMEOUT = 10  # seconds
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}
USER_AGENT = "Mozilla/5.0 (compatible; clipmark/1.0)"


def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address."""
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror:
        return False

    for info in infos:
        raw_ip = info[4][0]
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = raw_ip.split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


def _validate_url(url: str) -> None:
    """Raise ValueError if *url* fails SSRF / scheme validation."""
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError("URL must have a valid hostname.")

    if _is_private_address(hostname):
        raise ValueError("Requests to private/internal addresses are not allowed.")


def is_data_url(url: str) -> bool:
    return url[:5].lower() == "data:"


def decode_data_url(url: str) -> Tuple[bytes, str]:
    """Decode a ``data:`` URL into ``(payload, content_type)``.

    Raises:
        ValueError: if *url* is not a well-formed data URL.
    """
    header, sep, payload = url[5:].partition(",")
    if not sep:
        raise ValueError("Malformed data URL: missing ','.")
    params = header.split(";")
    content_type = params[0] or "text/plain"
    if "base64" in (p.strip().lower() for p in params[1:]):
        try:
            data = base64.b64decode(unquote_to_bytes(payload), validate=False)
        except ValueError as exc:
            raise ValueError(f"Malformed base64 payload in data URL: {exc}") from exc
    else:
        data = unquote_to_bytes(payload)
    if len(data) > MAX_CONTENT_SIZE:
        raise RuntimeError("Response body exceeds the maximum allowed size.")
    return data, content_type


async def _fetch(url: str) -> Tuple[bytes, str]:
    """Fetch *url* and return ``(body, content_type)``.

    Redirects are followed manually so that every redirect destination is
    validated against the SSRF rules before the next request is made.
    """
    _validate_url(url)

    current_url = url
    headers = {"User-Agent": USER_AGENT}
    async with httpx.AsyncClient(follow_redirects=False, timeout=TIMEOUT, headers=headers) as client:
        for _ in range(MAX_REDIRECTS + 1):
            async with client.stream("GET", current_url) as response:
                if response.is_redirect:
                    location = response.headers.get("location", "")
                    next_url = urljoin(current_url, location)
                    _validate_url(next_url)
                    current_url = next_url
                    continue

                response.raise_for_status()

                content_length = response.headers.get("content-length")
                if content_length and int(content_length) > MAX_CONTENT_SIZE:
                    raise RuntimeError("Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > MAX_CONTENT_SIZE:
                        raise RuntimeError("Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                content_type = response.headers.get("content-type", "")
                return b"".join(chunks), content_type.split(";")[0].strip()

    raise RuntimeError("Too many redirects.")


async def fetch_url(url: str) -> str:
    """Fetch *url* and return the response body as a string.

    ``data:`` URLs are decoded locally without any network access.

    Raises:
        ValueError: if the URL fails SSRF / scheme validation.
        httpx.HTTPError: on network or HTTP errors.
        RuntimeError: if the response body exceeds MAX_CONTENT_SIZE.
    """
    if is_data_url(url):
        data, _ = decode_data_url(url)
    else:
        data, _ = await _fetch(url)
    return data.decode(errors="replace")


async def fetch_asset(url: str) -> Tuple[bytes, str]:
    """Fetch a binary resource (an image) and return ``(body, content_type)``.

    Raises the same errors as :func:`fetch_url`.
    """
    if is_data_url(url):
        return decode_data_url(url)
    logger.debug("Fetching asset", extra={"url": url})
    return await _fetch(url)
