import pytest

from searchengine.parsing.link_extractor import extract_links


@pytest.mark.parametrize(
    "href,expected",
    [
        ("/about", "https://example.com/about"),
        ("../relative", "https://example.com/relative"),
        ("page#section", "https://example.com/base/page"),
        ("//example.com/proto", "https://example.com/proto"),
        ("https://other.org/x/", "https://other.org/x/"),
    ],
)
def test_extract_links_resolves_against_page_url(href, expected):
    html = f"<html><body><a href='{href}'>Link</a></body></html>"
    assert extract_links(html, "https://example.com/base/") == {expected}


@pytest.mark.parametrize(
    "href",
    ["javascript:void(0)", "mailto:info@example.com", "tel:+7000", "http://[::1", "", "   "],
)
def test_extract_links_discards_unusable_hrefs(href):
    html = f"<a href='{href}'>x</a>"
    assert extract_links(html, "https://example.com/") == set()


def test_extract_links_deduplicates_and_honours_base_tag():
    html = """
    <html><head><base href="https://example.com/docs/"></head>
    <body>
      <a href="intro">one</a>
      <a href="intro#top">two</a>
      <a>no href</a>
    </body></html>
    """
    assert extract_links(html, "https://example.com/") == {"https://example.com/docs/intro"}


def test_extract_links_empty_document():
    assert extract_links("", "https://example.com/") == set()
    assert extract_links(None, "https://example.com/") == set()
