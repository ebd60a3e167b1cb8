from bs4 import BeautifulSoup

from linkgraph.extract import extract_favicon, extract_links, parse_page

PAGE = """
<html>
  <head>
    <title>  Example Page  </title>
    <link rel="stylesheet" href="/site.css">
  </head>
  <body>
    <a href="/about">About</a>
    <a href="https://other.org/page">Other</a>
    <a href="#top">Top</a>
    <a href="/docs#install">Docs section</a>
    <a href="mailto:hi@example.com">Mail</a>
    <a href="javascript:void(0)">JS</a>
    <a href="ftp://files.example.com/x">FTP</a>
    <a href="/report.PDF">Report</a>
    <a href="/photo.jpg">Photo</a>
    <a href="/about">About again</a>
    <a href="contact">Contact</a>
  </body>
</html>
"""


def test_parse_page_filters_and_orders_links():
    title, links, favicon = parse_page(PAGE, "https://example.com/dir/", 20)
    assert title == "Example Page"
    assert links == [
        "https://example.com/about",
        "https://other.org/page",
        "https://example.com/dir/contact",
    ]
    assert favicon == "https://example.com/favicon.ico"


def test_links_are_bounded():
    html = "".join(f'<a href="/p{i}">p{i}</a>' for i in range(50))
    soup = BeautifulSoup(html, "html.parser")
    links = extract_links(soup, "https://example.com/", 20)
    assert len(links) == 20
    assert links[0] == "https://example.com/p0"
    assert links[-1] == "https://example.com/p19"


def test_title_falls_back_to_url():
    title, _, _ = parse_page("<html><head><title>   </title></head></html>", "https://example.com/", 20)
    assert title == "https://example.com/"
    title, _, _ = parse_page("<html></html>", "https://example.com/final", 20, title_fallback="https://example.com/start")
    assert title == "https://example.com/start"


def test_favicon_priority_order():
    html = """
    <head>
      <link rel="apple-touch-icon" href="/apple.png">
      <link rel="icon" href="/icon.png">
    </head>
    """
    soup = BeautifulSoup(html, "html.parser")
    assert extract_favicon(soup, "https://example.com/a/b") == "https://example.com/icon.png"


def test_favicon_resolution():
    soup = BeautifulSoup('<link rel="shortcut icon" href="img/fav.ico">', "html.parser")
    assert extract_favicon(soup, "https://example.com/a/b") == "https://example.com/a/img/fav.ico"

    soup = BeautifulSoup('<link rel="icon" href="https://cdn.example.net/f.png">', "html.parser")
    assert extract_favicon(soup, "https://example.com/") == "https://cdn.example.net/f.png"

    soup = BeautifulSoup('<link type="image/x-icon" href="/x.ico">', "html.parser")
    assert extract_favicon(soup, "https://example.com:8443/deep/page") == "https://example.com:8443/x.ico"


def test_equivalent_links_count_once_toward_limit():
    html = (
        '<a href="https://B.test">b</a>'
        '<a href="https://b.test/">b</a>'
        '<a href="https://b.test:443/">b</a>'
        '<a href="https://c.test/">c</a>'
    )
    soup = BeautifulSoup(html, "html.parser")
    assert extract_links(soup, "https://a.test/", 3) == ["https://b.test/", "https://c.test/"]
