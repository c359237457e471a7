"""Tests for extractor.extract_article and url_components."""

import pytest

from clipmark.exceptions import ExtractionError
from clipmark.services.extractor import extract_article, url_components

_PAGE = """
<!DOCTYPE html>
<html lang="en" dir="ltr">
<head>
  <title>Page Title | Example Blog</title>
  <meta name="description" content="A short summary.">
  <meta name="author" content="Jane Doe">
  <meta name="keywords" content="python, clipping ,markdown">
  <meta property="og:site_name" content="Example Blog">
  <meta property="og:title" content="Article Heading">
  <meta property="article:published_time" content="2024-01-02T03:04:05Z">
  <meta name="length" content="999">
</head>
<body>
  <nav><a href="/">Home</a></nav>
  <article>
    <h1>Article Heading</h1>
    <p>First paragraph with a <a href="/docs/intro">relative link</a>.</p>
    <p><img src="img/photo.png" alt="Photo"></p>
    <p><a href="javascript:void(0)">script link</a> and <a href="#top">anchor</a>.</p>
  </article>
  <footer>Copyright</footer>
</body>
</html>
"""


class TestExtractArticle:
    def test_empty_document_raises(self):
        with pytest.raises(ExtractionError):
            extract_article("   ")

    def test_document_without_content_raises(self):
        with pytest.raises(ExtractionError):
            extract_article("<html><head><title>x</title></head><body><nav>menu</nav></body></html>")

    def test_metadata(self):
        article = extract_article(_PAGE, "https://blog.example.com/posts/1?ref=feed#top")
        assert article.page_title == "Page Title | Example Blog"
        assert article.title == "Article Heading"
        assert article.byline == "Jane Doe"
        assert article.excerpt == "A short summary."
        assert article.site_name == "Example Blog"
        assert article.lang == "en"
        assert article.direction == "ltr"
        assert article.published_time == "2024-01-02T03:04:05Z"
        assert article.keywords == ["python", "clipping", "markdown"]

    def test_url_components_are_merged(self):
        article = extract_article(_PAGE, "https://blog.example.com/posts/1?ref=feed#top")
        assert article.base_uri == "https://blog.example.com/posts/1?ref=feed#top"
        assert article.host == "blog.example.com"
        assert article.pathname == "/posts/1"
        assert article.search == "?ref=feed"
        assert article.hash == "#top"
        assert article.protocol == "https:"

    def test_boilerplate_removed(self):
        article = extract_article(_PAGE, "https://blog.example.com/posts/1")
        assert "Home" not in article.content
        assert "Copyright" not in article.content
        assert "First paragraph" in article.content
        assert article.length == len(article.text_content)

    def test_relative_urls_resolved(self):
        article = extract_article(_PAGE, "https://blog.example.com/posts/1")
        assert 'href="https://blog.example.com/docs/intro"' in article.content
        assert 'src="https://blog.example.com/posts/img/photo.png"' in article.content
        assert 'href="#top"' in article.content
        assert "javascript:" not in article.content

    def test_base_tag_overrides_location(self):
        html = '<html><head><base href="https://cdn.example.org/a/"></head><body><p><img src="x.png"></p></body></html>'
        article = extract_article(html, "https://example.com/page")
        assert article.base_uri == "https://cdn.example.org/a/"
        assert 'src="https://cdn.example.org/a/x.png"' in article.content

    def test_meta_tags_merge_first_writer_wins(self):
        article = extract_article(_PAGE, "https://blog.example.com/posts/1")
        extra = article.model_extra
        assert extra["og:title"] == "Article Heading"
        assert extra["description"] == "A short summary."
        # reserved keys are never overwritten by meta tags
        assert article.length != 999
        assert "length" not in extra

    def test_duplicate_meta_keeps_first_value(self):
        html = (
            '<html><head><meta name="twitter:card" content="summary">'
            '<meta name="twitter:card" content="large"></head><body><p>text</p></body></html>'
        )
        article = extract_article(html)
        assert article.model_extra["twitter:card"] == "summary"

    def test_no_keywords_meta(self):
        article = extract_article("<html><body><p>Just text</p></body></html>")
        assert article.keywords is None
        assert article.base_uri == "https://example.com"

    def test_math_table_survives(self):
        html = (
            '<html><body><article><p>Energy '
            '<script type="math/tex" id="MathJax-Element-1">E=mc^2</script></p></article></body></html>'
        )
        article = extract_article(html, "https://example.com/")
        (element_id,) = article.math
        assert element_id in article.content


class TestUrlComponents:
    def test_default_port_is_dropped(self):
        parts = url_components("https://example.com:443/a")
        assert parts["port"] == ""
        assert parts["host"] == "example.com"
        assert parts["origin"] == "https://example.com"

    def test_explicit_port_kept(self):
        parts = url_components("http://example.com:8080/")
        assert parts["port"] == "8080"
        assert parts["host"] == "example.com:8080"

    def test_empty_path_becomes_root(self):
        assert url_components("https://example.com")["pathname"] == "/"


_BODY_TEXT = (
    "This is the real article body text. It runs for a couple of sentences so it "
    "reads like prose, with commas, clauses, and enough length to be scored."
)


class TestReadableContent:
    def test_article_with_comment_class_is_kept(self):
        html = (
            '<html><body><article class="post has-comments"><h1>Hi</h1>'
            f"<p>{_BODY_TEXT}</p><p>{_BODY_TEXT}</p></article>"
            '<div class="footer-links"><p>Copyright</p></div></body></html>'
        )
        article = extract_article(html, "https://example.com/post")
        assert "real article body text" in article.content
        assert "Copyright" not in article.content

    def test_hidden_elements_dropped(self):
        html = (
            f"<html><body><article><p>{_BODY_TEXT}</p>"
            '<div style="display:none">Hidden</div><p hidden>Ghost</p></article></body></html>'
        )
        article = extract_article(html)
        assert "Hidden" not in article.content
        assert "Ghost" not in article.content

    def test_scripts_and_event_attributes_removed(self):
        html = (
            f'<html><body><article><p onclick="track()" style="color:red">{_BODY_TEXT}</p>'
            "<script>alert('x')</script></article></body></html>"
        )
        content = extract_article(html).content
        assert "alert" not in content
        assert "onclick" not in content
        assert "color:red" not in content

    def test_chrome_removed_when_falling_back_to_body(self):
        html = "<html><body><nav>Home</nav><aside>Widget</aside><p>Short note</p></body></html>"
        content = extract_article(html).content
        assert "Short note" in content
        assert "Home" not in content
        assert "Widget" not in content

    def test_title_falls_back_to_document_title(self):
        html = f"<html><head><title>Plain Title</title></head><body><p>{_BODY_TEXT}</p></body></html>"
        assert extract_article(html).title == "Plain Title"
