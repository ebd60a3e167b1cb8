import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx
from loguru import logger
from playwright.async_api import async_playwright, Browser, Playwright, Route

from linkgraph.config import settings
from linkgraph.extract import parse_page
from linkgraph.metrics import page_fetch_duration_seconds


@dataclass(frozen=True)
class PageResult:
    url: str
    title: str
    links: Tuple[str, ...] = ()
    favicon: Optional[str] = None
    success: bool = True
    error: Optional[str] = None

    @classmethod
    def failure(cls, url: str, error: Optional[str] = None) -> "PageResult":
        return cls(url=url, title=url, links=(), favicon=None, success=False, error=error)


class FetchError(Exception):
    pass


class BasePageFetcher:
    """Fetches one page and reduces it to title, outbound links and favicon.

    ``fetch`` never raises for page-level problems: network errors, timeouts
    and navigation errors come back as ``PageResult.failure``. The whole call
    is bounded by ``timeout`` seconds, whatever the page does.
    """

    def __init__(self, *, links_per_page: Optional[int] = None, user_agent: Optional[str] = None):
        self.links_per_page = links_per_page or settings.links_per_page
        self.user_agent = user_agent or settings.user_agent

    async def _load(self, url: str, timeout: float) -> Tuple[str, str]:
        """Return ``(html, final_url)`` for ``url``."""
        raise NotImplementedError

    async def fetch(self, url: str, timeout: Optional[float] = None) -> PageResult:
        if timeout is None:
            timeout = settings.fetch_timeout
        logger.info(f"Starting to fetch: {url}")
        start = time.perf_counter()
        try:
            html, final_url = await asyncio.wait_for(self._load(url, timeout), timeout=timeout)
            title, links, favicon = parse_page(html, final_url, self.links_per_page, title_fallback=url)
        except asyncio.TimeoutError:
            logger.info(f"Timed out fetching {url} after {timeout:.1f}s")
            return PageResult.failure(url, "timeout")
        except Exception as e:
            logger.info(f"Error fetching {url}: {e}")
            return PageResult.failure(url, str(e))
        finally:
            page_fetch_duration_seconds.observe(time.perf_counter() - start)

        logger.info(f"Successfully fetched {url} with {len(links)} links")
        return PageResult(url=url, title=title, links=tuple(links), favicon=favicon)

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass


class HttpPageFetcher(BasePageFetcher):
    """Plain GET without rendering; scripts on the page never run."""

    def __init__(self, *, client: Optional[httpx.AsyncClient] = None, **kwargs):
        super().__init__(**kwargs)
        self._client = client

    async def _load(self, url: str, timeout: float) -> Tuple[str, str]:
        created_client: Optional[httpx.AsyncClient] = None
        client = self._client
        if client is None:
            created_client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
            client = created_client
        try:
            resp = await client.get(url, headers={"User-Agent": self.user_agent}, follow_redirects=True)
            if resp.status_code >= 400:
                raise FetchError(f"HTTP {resp.status_code}")
            content_type = resp.headers.get("content-type", "").lower()
            if "text/html" not in content_type:
                raise FetchError(f"Unsupported content-type '{content_type}'")
            return resp.text, str(resp.url)
        finally:
            if created_client:
                await created_client.aclose()


class BrowserPageFetcher(BasePageFetcher):
    """Renders pages in a shared headless Chromium, one context per fetch."""

    BLOCKED_RESOURCE_TYPES = frozenset(["stylesheet", "font", "media"])

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.browser: Optional[Browser] = None
        self._playwright: Optional[Playwright] = None
        self._launch_lock = asyncio.Lock()

    async def initialize_browser(self) -> Browser:
        async with self._launch_lock:
            if self.browser is None:
                playwright = await async_playwright().start()
                try:
                    self.browser = await playwright.chromium.launch(
                        headless=True,
                        args=[
                            "--no-sandbox",
                            "--disable-setuid-sandbox",
                            "--disable-dev-shm-usage",
                        ]
                    )
                except BaseException:
                    # Launch failed or hit the fetch deadline; don't leave the driver behind
                    try:
                        await playwright.stop()
                    except Exception as e:
                        logger.debug(f"Playwright stop failed: {e}")
                    raise
                self._playwright = playwright
        return self.browser

    async def start(self) -> None:
        await self.initialize_browser()

    async def close(self) -> None:
        if self.browser:
            try:
                await self.browser.close()
            except Exception as e:
                # The driver may already be gone during interpreter shutdown
                logger.debug(f"Browser close failed: {e}")
            self.browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Playwright stop failed: {e}")
            self._playwright = None

    @classmethod
    def should_block(cls, resource_type: str, request_url: str) -> bool:
        if resource_type == "image":
            return "icon" not in request_url.lower()
        return resource_type in cls.BLOCKED_RESOURCE_TYPES

    async def _route_request(self, route: Route) -> None:
        request = route.request
        if self.should_block(request.resource_type, request.url):
            await route.abort()
        else:
            await route.continue_()

    async def _load(self, url: str, timeout: float) -> Tuple[str, str]:
        browser = await self.initialize_browser()
        timeout_ms = timeout * 1000
        context = await browser.new_context(user_agent=self.user_agent)
        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(timeout_ms)
            page.set_default_timeout(timeout_ms)
            await page.route("**/*", self._route_request)
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            html = await page.content()
            return html, page.url or url
        finally:
            await context.close()


def create_fetcher(kind: Optional[str] = None) -> BasePageFetcher:
    kind = kind or settings.fetcher
    if kind == "http":
        return HttpPageFetcher()
    if kind == "browser":
        return BrowserPageFetcher()
    raise ValueError(f"Unknown fetcher: {kind}")
