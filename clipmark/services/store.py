import logging
import re
from pathlib import Path
from typing import Optional

from clipmark.config import OUTPUT_DIR
from clipmark.exceptions import InputError

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"[A-Za-z0-9-]+")


def validate_document_id(document_id: str) -> str:
    """Return *document_id* if it is safe to use as a file or directory name.

    Raises:
        InputError: for anything but letters, digits and hyphens.
    """
    if not isinstance(document_id, str) or not _ID_RE.fullmatch(document_id):
        raise InputError("Invalid result id.")
    return document_id


def _result_path(document_id: str, output_dir: Optional[str]) -> Path:
    validate_document_id(document_id)
    return Path(output_dir or OUTPUT_DIR) / f"{document_id}.md"


def save_result(document_id: str, markdown: str, output_dir: Optional[str] = None) -> Path:
    """Write *markdown* to ``<output_dir>/<document_id>.md`` and return the path."""
    path = _result_path(document_id, output_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(markdown, encoding="utf-8")
    logger.debug("Result stored", extra={"path": str(path)})
    return path


def load_result(document_id: str, output_dir: Optional[str] = None) -> Optional[str]:
    """Return a stored result, or None if no result exists for *document_id*."""
    path = _result_path(document_id, output_dir)
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")
