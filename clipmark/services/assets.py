"""Download the images a clip references and rewrite the Markdown to match.

The image list produced by the converter maps every source URL to the
local filename the Markdown already points at.  Each source is fetched
once; a failure affects only that image, whose reference falls back to
the source URL.
"""

import asyncio
import base64
import logging
import mimetypes
import re
from pathlib import Path
from typing import Dict, Tuple

import httpx

from clipmark.exceptions import AssetFetchError
from clipmark.models.options import Options
from clipmark.services.converter import UNKNOWN_EXTENSION, image_reference
from clipmark.services.fetcher import fetch_asset
from clipmark.services.store import validate_document_id

logger = logging.getLogger(__name__)

FALLBACK_EXTENSION = "bin"

# What may precede an image target: `](`, `![[` or a reference definition `]: `
_TARGET_PREFIX = r"(\]\(|\[\[|\]: )"
# ... and what may follow it: the closing bracket, a title or the line end
_TARGET_SUFFIX = r"(?=\)|\]\]|[ \t]|$)"


def _extension_for(content_type: str) -> str:
    extension = mimetypes.guess_extension(content_type or "")
    if extension:
        # mimetypes prefers ".jpe" on some platforms
        return "jpg" if extension in (".jpe", ".jpeg") else extension.lstrip(".")
    return FALLBACK_EXTENSION


def _data_uri(data: bytes, content_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return "data:%s;base64,%s" % (content_type or "application/octet-stream", encoded)


async def _fetch_one(src: str) -> Tuple[bytes, str]:
    try:
        return await fetch_asset(src)
    except (ValueError, RuntimeError, httpx.HTTPError) as exc:
        raise AssetFetchError(src, str(exc) or exc.__class__.__name__) from exc


def _replace_target(markdown: str, old: str, new: str) -> str:
    """Point every image link whose whole target is *old* at *new*."""
    pattern = re.compile(_TARGET_PREFIX + re.escape(old) + _TARGET_SUFFIX, re.MULTILINE)
    return pattern.sub(lambda match: match.group(1) + new, markdown)


async def download_images(
    image_list: Dict[str, str],
    markdown: str,
    options: Options,
    document_id: str,
    *,
    output_dir: str,
) -> Tuple[str, Dict[str, str], Dict[str, str]]:
    """Fetch every image in *image_list* and materialise it.

    With ``imageStyle == "base64"`` the source URL in *markdown* is replaced
    by an inline data URI.  Otherwise the image is written to
    ``<output_dir>/<document_id>/<filename>``; a filename ending in the
    unknown-extension marker is completed from the response content type.
    Only whole link targets are rewritten, so one image never touches the
    reference of another whose name merely contains it.

    Returns:
        (markdown, saved, failed) where *saved* maps written paths to
        filenames and *failed* maps source URLs to the error message.

    Raises:
        InputError: if *document_id* is not a safe directory name.
    """
    if not image_list:
        return markdown, {}, {}
    validate_document_id(document_id)

    style = options.image_style
    keeps_source = style in ("originalSource", "base64")
    sources = list(image_list)
    results = await asyncio.gather(*(_fetch_one(src) for src in sources), return_exceptions=True)

    target_dir = Path(output_dir) / document_id
    saved: Dict[str, str] = {}
    failed: Dict[str, str] = {}

    for src, result in zip(sources, results):
        filename = image_list[src]
        if isinstance(result, AssetFetchError):
            logger.warning("Image download failed", extra={"src": src, "reason": result.reason})
            failed[src] = result.reason
            if not keeps_source:
                markdown = _replace_target(markdown, image_reference(filename, style), src)
            continue
        if isinstance(result, BaseException):
            raise result

        data, content_type = result
        if style == "base64":
            markdown = _replace_target(markdown, src, _data_uri(data, content_type))
            continue

        if filename.endswith(UNKNOWN_EXTENSION):
            completed = filename[: -len(UNKNOWN_EXTENSION)] + "." + _extension_for(content_type)
            if not keeps_source:
                markdown = _replace_target(
                    markdown, image_reference(filename, style), image_reference(completed, style)
                )
            filename = completed

        path = target_dir / filename
        if not path.resolve().is_relative_to(target_dir.resolve()):
            logger.warning("Refusing to write image outside the output directory", extra={"image": filename})
            failed[src] = "Invalid image filename."
            if not keeps_source:
                markdown = _replace_target(markdown, image_reference(filename, style), src)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        saved[str(path)] = filename

    logger.info(
        "Images materialised",
        extra={"document_id": document_id, "saved": len(saved), "failed": len(failed)},
    )
    return markdown, saved, failed
