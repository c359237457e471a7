from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DEFAULT_FRONTMATTER = (
    "---\n"
    "created: {date:YYYY-MM-DDTHH:mm:ss} (UTC {date:Z})\n"
    "tags: [{keywords}]\n"
    "source: {baseURI}\n"
    "author: {byline}\n"
    "---\n"
    "\n"
    "# {pageTitle}\n"
    "\n"
    "> ## Excerpt\n"
    "> {excerpt}\n"
    "\n"
    "---"
)


class Options(BaseModel):
    """Effective conversion settings.

    Serialised with camelCase aliases (``headingStyle``) so clients written
    against the browser extension can send their stored settings verbatim.
    Keys this model does not know about are carried through untouched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    # Markdown style
    heading_style: str = "atx"
    hr: str = "___"
    bullet_list_marker: str = "-"
    code_block_style: str = "fenced"
    fence: str = "```"
    em_delimiter: str = "_"
    strong_delimiter: str = "**"
    link_style: str = "inlined"
    link_reference_style: str = "full"
    image_style: str = "markdown"
    image_ref_style: str = "inlined"
    turndown_escape: bool = True

    # Templates
    frontmatter: str = DEFAULT_FRONTMATTER
    backmatter: str = ""
    title: str = "{pageTitle}"
    image_prefix: str = "{pageTitle}/"
    disallowed_chars: str = "[]#^"

    # Behaviour
    include_template: bool = True
    save_as: bool = False
    download_images: bool = False
    md_clips_folder: Optional[str] = None
    download_mode: str = "downloadsApi"
    context_menus: bool = True
    obsidian_integration: bool = False
    obsidian_vault: str = ""
    obsidian_folder: str = ""
    puppeteer: bool = False
