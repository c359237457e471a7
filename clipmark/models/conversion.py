from typing import Dict

from pydantic import BaseModel, Field


class ConversionResult(BaseModel):
    markdown: str
    title: str = ""
    image_list: Dict[str, str] = Field(default_factory=dict)
    """Final on-disk path → filename for every materialized image."""
    failed_images: Dict[str, str] = Field(default_factory=dict)
    """Source URL → error message for images that could not be fetched."""
