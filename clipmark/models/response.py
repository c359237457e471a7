from typing import Dict

from pydantic import BaseModel, Field


class ClipResponse(BaseModel):
    id: str
    """Identifier of the stored result (``GET /result/{id}``) and image folder."""
    title: str
    markdown: str
    image_list: Dict[str, str] = Field(default_factory=dict)
    failed_images: Dict[str, str] = Field(default_factory=dict)
