import asyncio
import pytest
from unittest.mock import patch, AsyncMock, MagicMock

from linkgraph.fetcher import BasePageFetcher, PageResult
from linkgraph.frontier import VisitedRegistry, visited_registry


@pytest.fixture
def mocker(request):
    """Lightweight pytest-mock substitute to provide mocker.patch and AsyncMock.

    Ensures patches are stopped after each test.
    """
    active_patches = []

    class _Mocker:
        AsyncMock = AsyncMock
        MagicMock = MagicMock

        def patch(self, target, *args, **kwargs):
            p = patch(target, *args, **kwargs)
            m = p.start()
            active_patches.append(p)
            return m

        def patch_object(self, target, attribute, *args, **kwargs):
            p = patch.object(target, attribute, *args, **kwargs)
            m = p.start()
            active_patches.append(p)
            return m

    def fin():
        for p in reversed(active_patches):
            p.stop()

    request.addfinalizer(fin)
    return _Mocker()


class FakeFetcher(BasePageFetcher):
    """Serves a fixed link map; ``"timeout"`` entries sleep past any deadline."""

    def __init__(self, pages, *, titles=None, favicons=None, delay: float = 0.0):
        super().__init__(links_per_page=20, user_agent="test")
        self.pages = pages
        self.titles = titles or {}
        self.favicons = favicons or {}
        self.delay = delay
        self.calls = []
        self.inflight = 0
        self.max_inflight = 0

    async def fetch(self, url, timeout=None):
        self.calls.append(url)
        self.inflight += 1
        self.max_inflight = max(self.max_inflight, self.inflight)
        try:
            page = self.pages.get(url)
            if page == "timeout":
                await asyncio.sleep(60)
            if page == "error" or page is None:
                return PageResult.failure(url, "unreachable")
            if page == "raise":
                raise RuntimeError(f"fetcher blew up on {url}")
            await asyncio.sleep(self.delay)
            return PageResult(
                url=url,
                title=self.titles.get(url, f"Title of {url}"),
                links=tuple(page),
                favicon=self.favicons.get(url),
            )
        finally:
            self.inflight -= 1


@pytest.fixture
def registry():
    return VisitedRegistry()


@pytest.fixture(autouse=True)
def clean_visited_registry():
    visited_registry.clear()
    yield
    visited_registry.clear()


@pytest.fixture
def make_fetcher():
    return FakeFetcher
