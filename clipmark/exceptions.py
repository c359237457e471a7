"""Exception hierarchy for the clipping pipeline.

Fetchers keep raising plain ``ValueError`` / ``httpx.HTTPError`` /
``RuntimeError``; the classes below mark failures that belong to the
conversion pipeline itself so routers can map them to status codes.
"""


class ClipmarkError(Exception):
    """Base class for pipeline errors."""


class InputError(ClipmarkError, ValueError):
    """The submitted URL or HTML cannot be processed."""


class ExtractionError(ClipmarkError):
    """The boilerplate extractor found no usable article content."""


class ConversionError(ClipmarkError):
    """The Markdown emitter was configured with unsupported options."""


class AssetFetchError(ClipmarkError):
    """A single referenced image could not be retrieved."""

    def __init__(self, src: str, reason: str) -> None:
        super().__init__(f"{src}: {reason}")
        self.src = src
        self.reason = reason


class RenderProviderError(ClipmarkError, RuntimeError):
    """Headless-browser rendering failed."""
