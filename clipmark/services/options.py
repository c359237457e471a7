"""Layered option resolution: built-in defaults, environment, per-request overrides."""

import logging
import os
from typing import Any, Dict, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from clipmark.config import ENV_DOWNLOAD_IMAGES, ENV_IMAGE_STYLE, ENV_USE_BROWSER, ENV_USE_PUPPETEER
from clipmark.models.options import Options

logger = logging.getLogger(__name__)


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() == "true"


def environment_overrides() -> Dict[str, Any]:
    """Return the option values set through environment variables."""
    overrides: Dict[str, Any] = {}
    download_images = _env_flag(ENV_DOWNLOAD_IMAGES)
    if download_images is not None:
        overrides["downloadImages"] = download_images
    image_style = os.environ.get(ENV_IMAGE_STYLE)
    if image_style:
        overrides["imageStyle"] = image_style
    use_browser = _env_flag(ENV_USE_PUPPETEER)
    if use_browser is None:
        use_browser = _env_flag(ENV_USE_BROWSER)
    if use_browser is not None:
        overrides["puppeteer"] = use_browser
    return overrides


def _alias_of(key: str) -> str:
    """Map a snake_case field name to its camelCase alias; other keys pass through."""
    if key in Options.model_fields:
        return to_camel(key)
    return key


def resolve_options(overrides: Optional[Dict[str, Any]] = None) -> Options:
    """Build the effective :class:`Options` for one conversion.

    Later layers win: defaults < environment < *overrides*.  Keys may be
    given in camelCase or snake_case; unknown keys are preserved.  A value
    that fails validation is logged and dropped, so the default for that
    key applies instead and resolution itself never fails.
    """
    merged: Dict[str, Any] = {}
    for layer in (environment_overrides(), overrides or {}):
        for key, value in layer.items():
            merged[_alias_of(key)] = value

    try:
        return Options.model_validate(merged)
    except ValidationError as exc:
        invalid = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
        for key in sorted(invalid):
            logger.warning("Ignoring invalid option", extra={"option": key, "value": repr(merged.get(key))})
        cleaned = {key: value for key, value in merged.items() if key not in invalid}
        return Options.model_validate(cleaned)
