"""Page text tests — HTML reduction and URL syntax checks."""

import pytest

from toolfinder.core.extract_page_text import PAGE_TEXT_LIMIT, html_to_text, is_valid_url


def test_scripts_styles_and_tags_are_removed():
    html = (
        "<html><head><style>body{color:red}</style>"
        "<script type='text/javascript'>var x = '<b>';</script></head>"
        "<body><h1>Locofy</h1>\n\n<p>Figma   to <b>React</b></p></body></html>"
    )
    assert html_to_text(html) == "Locofy Figma to React"


def test_entities_are_decoded_and_comments_dropped():
    html = "<p>Fast &amp; simple &mdash; no&nbsp;code</p><!-- a > b -->hidden"
    assert html_to_text(html) == "Fast & simple — no code hidden"


def test_noscript_content_is_dropped():
    html = "<body><noscript>Enable JavaScript</noscript><main>Ship faster</main></body>"
    assert html_to_text(html) == "Ship faster"


def test_text_is_truncated_to_limit():
    html = "<p>" + "a" * (PAGE_TEXT_LIMIT + 500) + "</p>"
    assert len(html_to_text(html)) == PAGE_TEXT_LIMIT
    assert len(html_to_text(html, limit=10)) == 10


@pytest.mark.parametrize("url", [
    "https://www.locofy.ai/",
    "http://example.com/tool?ref=slack",
    "  https://example.com  ",
])
def test_valid_urls(url):
    assert is_valid_url(url)


@pytest.mark.parametrize("url", [
    None, "", "not-a-url", "locofy.ai", "ftp://example.com",
    "https://", "https://exa mple.com", "javascript:alert(1)",
])
def test_invalid_urls(url):
    assert not is_valid_url(url)
