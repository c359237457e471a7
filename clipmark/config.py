"""Process-level settings read from the environment."""

import os

# Directory that receives stored Markdown results and downloaded images
OUTPUT_DIR = os.environ.get("OUTPUT_DIR", "output")

# Synthetic location used as the document base when none is known
DEFAULT_BASE_URI = os.environ.get("DEFAULT_BASE_URI", "https://example.com")

# Environment variables that override the built-in option defaults.
# They are read on every resolution so a running process picks up changes.
ENV_DOWNLOAD_IMAGES = "DOWNLOAD_IMAGES"
ENV_IMAGE_STYLE = "IMAGE_STYLE"
ENV_USE_PUPPETEER = "USE_PUPPETEER"
# Accepted when USE_PUPPETEER is unset
ENV_USE_BROWSER = "USE_BROWSER"

CLIP_RATE_LIMIT = os.environ.get("CLIP_RATE_LIMIT", "10/minute")
CONVERT_RATE_LIMIT = os.environ.get("CONVERT_RATE_LIMIT", "30/minute")
