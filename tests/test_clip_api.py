"""Tests for the /clip, /convert, /options and /result endpoints.

Network fetches and the Playwright browser are replaced with mocks, stored
results go to a temporary directory, and the clock used by the date
placeholders is frozen.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from clipmark.exceptions import RenderProviderError
from clipmark.main import app

client = TestClient(app)

_NOW = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Clear the slowapi in-memory counter before every test."""
    app.state.limiter._storage.reset()
    yield


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    for name in ("DOWNLOAD_IMAGES", "IMAGE_STYLE", "USE_PUPPETEER", "USE_BROWSER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("clipmark.services.store.OUTPUT_DIR", str(tmp_path))
    monkeypatch.setattr("clipmark.services.clipper.OUTPUT_DIR", str(tmp_path))
    monkeypatch.setattr("clipmark.services.clipper.local_now", lambda: _NOW)


# ---------------------------------------------------------------------------
# Shared HTML fixtures
# ---------------------------------------------------------------------------

_ARTICLE_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
  <title>Clipping Test</title>
  <meta name="description" content="An article used in tests.">
  <meta name="keywords" content="tests,clips">
</head>
<body>
  <nav><a href="/">Home</a></nav>
  <article>
    <h1>Clipping Test</h1>
    <p>Readable paragraph with a <a href="/more">link</a>.</p>
    <pre><code class="language-python">print("hi")</code></pre>
  </article>
</body>
</html>
"""

_EMPTY_HTML = "<html><head><title>Nothing</title></head><body><nav>menu</nav></body></html>"


def _clip(url: str = "https://example.com/post", **options):
    return client.post("/clip", json={"url": url, "options": options})


# ---------------------------------------------------------------------------
# POST /clip
# ---------------------------------------------------------------------------

class TestClip:
    def test_clip_http_page(self):
        with patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_ARTICLE_HTML)):
            resp = _clip()

        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Clipping Test"
        assert data["id"]
        markdown = data["markdown"]
        assert "source: https://example.com/post" in markdown
        assert "tags: [tests,clips]" in markdown
        assert "[link](https://example.com/more)" in markdown
        assert '```python\nprint("hi")\n```' in markdown
        assert "Home" not in markdown

    def test_clip_data_url_without_network(self):
        url = "data:text/html,<html><body><article><p>Inline page</p></article></body></html>"
        with patch(
            "clipmark.services.fetcher._fetch",
            new=AsyncMock(side_effect=AssertionError("network must not be used")),
        ):
            resp = _clip(url, includeTemplate=False)

        assert resp.status_code == 200
        assert resp.json()["markdown"] == "Inline page"

    def test_browser_used_when_requested(self):
        with (
            patch(
                "clipmark.routers.clip.fetch_url",
                new=AsyncMock(side_effect=AssertionError("HTTP fetch must not be called")),
            ),
            patch(
                "clipmark.routers.clip.fetch_url_with_browser",
                new=AsyncMock(return_value=_ARTICLE_HTML),
            ) as browser,
        ):
            resp = _clip(puppeteer=True)

        assert resp.status_code == 200
        browser.assert_awaited_once()

    def test_browser_enabled_from_environment(self, monkeypatch):
        monkeypatch.setenv("USE_PUPPETEER", "true")
        with (
            patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_ARTICLE_HTML)),
            patch(
                "clipmark.routers.clip.fetch_url_with_browser",
                new=AsyncMock(return_value=_ARTICLE_HTML),
            ) as browser,
        ):
            resp = _clip()

        assert resp.status_code == 200
        browser.assert_awaited_once()

    def test_browser_and_http_produce_same_markdown(self):
        with patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_ARTICLE_HTML)):
            direct = _clip().json()["markdown"]
        with patch(
            "clipmark.routers.clip.fetch_url_with_browser", new=AsyncMock(return_value=_ARTICLE_HTML)
        ):
            rendered = _clip(puppeteer=True).json()["markdown"]
        assert direct == rendered

    def test_browser_failure_falls_back_to_http(self):
        with (
            patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_ARTICLE_HTML)) as http,
            patch(
                "clipmark.routers.clip.fetch_url_with_browser",
                new=AsyncMock(side_effect=RenderProviderError("browser crashed")),
            ),
        ):
            resp = _clip(puppeteer=True)

        assert resp.status_code == 200
        http.assert_awaited_once()

    def test_unsupported_scheme_rejected(self):
        resp = _clip("ftp://example.com/file")
        assert resp.status_code == 400

    def test_blocked_url_returns_400(self):
        with patch(
            "clipmark.routers.clip.fetch_url",
            new=AsyncMock(side_effect=ValueError("Requests to private/internal addresses are not allowed.")),
        ):
            resp = _clip("http://127.0.0.1/")
        assert resp.status_code == 400

    def test_timeout_returns_504(self):
        with patch(
            "clipmark.routers.clip.fetch_url",
            new=AsyncMock(side_effect=httpx.TimeoutException("timed out")),
        ):
            resp = _clip()
        assert resp.status_code == 504

    def test_upstream_error_returns_502(self):
        with patch(
            "clipmark.routers.clip.fetch_url",
            new=AsyncMock(side_effect=httpx.ConnectError("refused")),
        ):
            resp = _clip()
        assert resp.status_code == 502

    def test_no_content_returns_422(self):
        with patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_EMPTY_HTML)):
            resp = _clip()
        assert resp.status_code == 422

    def test_invalid_options_return_400(self):
        with patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_ARTICLE_HTML)):
            resp = _clip(headingStyle="fancy")
        assert resp.status_code == 400
        assert "headingStyle" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# POST /convert
# ---------------------------------------------------------------------------

class TestConvert:
    def test_convert_supplied_html(self):
        resp = client.post(
            "/convert",
            json={
                "html": _ARTICLE_HTML,
                "url": "https://blog.example.org/a/b",
                "options": {"includeTemplate": False, "linkStyle": "referenced"},
            },
        )
        assert resp.status_code == 200
        markdown = resp.json()["markdown"]
        assert "[link][1]" in markdown
        assert markdown.endswith("[1]: https://blog.example.org/more")

    def test_convert_rejects_non_http_base(self):
        resp = client.post("/convert", json={"html": _ARTICLE_HTML, "url": "file:///etc/passwd"})
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# GET /options and /result/{id}
# ---------------------------------------------------------------------------

class TestOptionsAndResults:
    def test_options_use_camel_case(self):
        resp = client.get("/options")
        assert resp.status_code == 200
        data = resp.json()
        assert data["headingStyle"] == "atx"
        assert data["imagePrefix"] == "{pageTitle}/"

    def test_stored_result_round_trip(self):
        with patch("clipmark.routers.clip.fetch_url", new=AsyncMock(return_value=_ARTICLE_HTML)):
            data = _clip().json()

        resp = client.get(f"/result/{data['id']}")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/markdown")
        assert resp.text == data["markdown"]

    def test_unknown_result_returns_404(self):
        assert client.get("/result/does-not-exist").status_code == 404

    def test_invalid_result_id_returns_404(self):
        assert client.get("/result/bad_id").status_code == 404

    def test_health_check(self):
        assert client.get("/").status_code == 200
