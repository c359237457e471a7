from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ClipRequest(BaseModel):
    url: str = Field(..., min_length=1)
    """Page to clip: an ``http(s)`` URL, or a ``data:text/html`` URL carrying the page itself."""
    options: Dict[str, Any] = Field(default_factory=dict)
    """Option overrides, camelCase or snake_case (see ``GET /options``)."""


class ConvertRequest(BaseModel):
    html: str
    url: Optional[str] = None
    """Address the HTML was captured from; used to resolve relative links."""
    options: Dict[str, Any] = Field(default_factory=dict)
