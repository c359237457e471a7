from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MathInfo(BaseModel):
    """TeX source of one math node found during preprocessing."""

    tex: str
    inline: bool


class Article(BaseModel):
    """Extraction result enriched with page metadata.

    Field aliases are the names used on the wire and inside templates
    (``{pageTitle}``, ``{baseURI}``, ...).  Site ``<meta>`` tags land in the
    model's extra fields under their own names (``{og:title}``).
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    content: str
    title: Optional[str] = None
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    length: Optional[int] = None
    site_name: Optional[str] = Field(default=None, alias="siteName")
    text_content: Optional[str] = Field(default=None, alias="textContent")
    lang: Optional[str] = None
    direction: Optional[str] = Field(default=None, alias="dir")
    published_time: Optional[str] = Field(default=None, alias="publishedTime")

    base_uri: Optional[str] = Field(default=None, alias="baseURI")
    page_title: Optional[str] = Field(default=None, alias="pageTitle")
    hash: Optional[str] = None
    host: Optional[str] = None
    origin: Optional[str] = None
    hostname: Optional[str] = None
    pathname: Optional[str] = None
    port: Optional[str] = None
    protocol: Optional[str] = None
    search: Optional[str] = None

    keywords: Optional[List[str]] = None
    math: Dict[str, MathInfo] = Field(default_factory=dict)

    def metadata(self) -> Dict[str, object]:
        """Return every templatable field keyed by its alias.

        The HTML body and the math side table are not metadata.
        """
        return self.model_dump(by_alias=True, exclude={"content", "math"})
