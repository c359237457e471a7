"""Turn an extracted article into the final Markdown document."""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from clipmark.config import OUTPUT_DIR
from clipmark.exceptions import ConversionError
from clipmark.models.article import Article
from clipmark.models.conversion import ConversionResult
from clipmark.services.assets import download_images
from clipmark.services.converter import convert_html, validate_options
from clipmark.services.dates import local_now
from clipmark.services.normalizer import sanitize_filename, sanitize_path
from clipmark.services.options import resolve_options
from clipmark.services.templates import expand_template

logger = logging.getLogger(__name__)


async def convert_article_to_markdown(
    article: Article,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    document_id: Optional[str] = None,
    output_dir: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConversionResult:
    """Render *article* as ``frontmatter + body + backmatter``.

    Options are resolved from defaults, the environment and *overrides*.
    When image downloading is enabled, images are fetched and stored under
    ``<output_dir>/<document_id>/``.

    Raises:
        ConversionError: if the resolved options name an unsupported style.
        InputError: if the document id cannot be used as a directory name.
    """
    options = resolve_options(overrides)
    problems = validate_options(options)
    if problems:
        raise ConversionError("; ".join(problems))

    # One instant for every date placeholder of this call
    now = now or local_now()
    disallowed = options.disallowed_chars

    if options.include_template:
        frontmatter = expand_template(options.frontmatter, article, now=now) + "\n"
        backmatter = "\n" + expand_template(options.backmatter, article, now=now)
    else:
        frontmatter = backmatter = ""

    image_prefix = sanitize_path(
        expand_template(options.image_prefix, article, disallowed, now=now), disallowed
    )

    body, image_list = convert_html(
        article.content,
        options,
        base_uri=article.base_uri or "",
        image_prefix=image_prefix,
        math=article.math,
    )
    markdown = frontmatter + body + backmatter

    failed_images: Dict[str, str] = {}
    if options.download_images and image_list:
        document_id = str(document_id or (overrides or {}).get("id") or uuid.uuid4())
        markdown, image_list, failed_images = await download_images(
            image_list,
            markdown,
            options,
            document_id,
            output_dir=output_dir or OUTPUT_DIR,
        )

    title = sanitize_filename(expand_template(options.title, article, disallowed, now=now), disallowed)

    logger.info(
        "Article converted",
        extra={"title": title, "images": len(image_list), "failed_images": len(failed_images)},
    )
    return ConversionResult(
        markdown=markdown,
        title=title,
        image_list=image_list,
        failed_images=failed_images,
    )
