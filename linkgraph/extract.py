from __future__ import annotations

from typing import List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from loguru import logger

from linkgraph.urls import InvalidUrlError, normalize_url, site_origin

# Non-HTML targets that are never worth rendering
SKIP_EXTENSIONS: frozenset[str] = frozenset((
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".bmp",
    ".zip", ".rar", ".7z", ".gz", ".tar",
    ".mp4", ".mp3", ".wav", ".webm", ".avi", ".mov",
    ".css", ".js", ".map",
    ".woff", ".woff2", ".ttf", ".eot",
    ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".exe", ".dmg",
))

# Checked in order; first declaration with an href wins
FAVICON_SELECTORS = [
    'link[rel="icon"]',
    'link[rel="shortcut icon"]',
    'link[rel="apple-touch-icon"]',
    'link[rel="apple-touch-icon-precomposed"]',
    'link[rel*="icon"]',
    'link[type="image/x-icon"]',
    'link[type="image/png"]',
    'link[type="image/gif"]',
]
DEFAULT_FAVICON_PATH = "/favicon.ico"


def extract_title(soup: BeautifulSoup, url: str) -> str:
    title_tag = soup.find("title")
    if title_tag:
        title = title_tag.get_text().strip()
        if title:
            return title
    return url


def _is_followable(href: str, absolute_url: str) -> bool:
    lowered = href.strip().lower()
    if not lowered or lowered.startswith("#"):
        return False
    if "javascript:" in lowered or "mailto:" in lowered:
        return False
    parsed = urlparse(absolute_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    if parsed.fragment or absolute_url.endswith("#"):
        return False
    path = parsed.path.lower()
    return not any(path.endswith(ext) for ext in SKIP_EXTENSIONS)


def extract_links(soup: BeautifulSoup, base_url: str, limit: int) -> List[str]:
    """Normalized outbound page links, de-duplicated in first-seen order."""
    links: List[str] = []
    seen: set[str] = set()
    for a_tag in soup.find_all("a", href=True):
        href = a_tag["href"]
        try:
            absolute_url = urljoin(base_url, href)
        except ValueError:
            continue
        if not _is_followable(href, absolute_url):
            continue
        try:
            link = normalize_url(absolute_url)
        except InvalidUrlError:
            logger.info(f"Invalid link skipped on {base_url}: {href!r}")
            continue
        if link in seen:
            continue
        seen.add(link)
        links.append(link)
        if len(links) >= limit:
            break
    return links


def resolve_favicon(href: str, page_url: str) -> Optional[str]:
    try:
        if href.startswith("/") and not href.startswith("//"):
            resolved = urljoin(site_origin(page_url), href)
        else:
            resolved = urljoin(page_url, href)
    except ValueError as e:
        logger.info(f"Error processing favicon URL {href!r} for {page_url}: {e}")
        return None
    if not urlparse(resolved).netloc:
        return None
    return resolved


def extract_favicon(soup: BeautifulSoup, page_url: str) -> Optional[str]:
    for selector in FAVICON_SELECTORS:
        el = soup.select_one(selector)
        if el is not None and el.get("href"):
            return resolve_favicon(el["href"].strip(), page_url)
    return resolve_favicon(DEFAULT_FAVICON_PATH, page_url)


def parse_page(html: str, url: str, links_per_page: int, title_fallback: Optional[str] = None):
    """Return ``(title, links, favicon)`` for a rendered HTML document.

    ``url`` is the address the document was served from and is used to
    resolve relative links; ``title_fallback`` defaults to it.
    """
    soup = BeautifulSoup(html, "html.parser")
    return (
        extract_title(soup, title_fallback or url),
        extract_links(soup, url, links_per_page),
        extract_favicon(soup, url),
    )
