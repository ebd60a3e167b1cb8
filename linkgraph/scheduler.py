"""Breadth-first, depth-bounded crawl scheduler.

A single coordinating task pops up to ``concurrent_fetches`` entries of one
depth level from the frontier, marks each one visited, fetches the whole batch
concurrently and waits for every fetch to settle before touching the frontier
or the graph again. Children are enqueued only after their parent's batch
settles and a batch never mixes levels, so every fetch at depth ``d`` has
completed before any at ``d + 1`` starts.
"""
from __future__ import annotations

import asyncio
import time
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from linkgraph.config import settings
from linkgraph.fetcher import BasePageFetcher, PageResult
from linkgraph.frontier import FrontierEntry, FrontierQueue, VisitedRegistry, visited_registry
from linkgraph.graph import CrawlResult, CrawlState, GraphAssembler, GraphEdge, GraphNode
from linkgraph.metrics import (
    crawl_jobs_total,
    crawl_jobs_completed_total,
    crawl_jobs_aborted_total,
    crawl_pages_fetched_total,
    crawl_frontier_size,
    crawl_inflight_gauge,
    crawl_visited_size,
)
from linkgraph.urls import InvalidUrlError, normalize_url


class CrawlScheduler:
    def __init__(
        self,
        fetcher: BasePageFetcher,
        *,
        registry: Optional[VisitedRegistry] = None,
        total_node_budget: Optional[int] = None,
        concurrent_fetches: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        self.fetcher = fetcher
        self.registry = registry if registry is not None else visited_registry
        self.total_node_budget = settings.total_node_budget if total_node_budget is None else total_node_budget
        self.concurrency = max(1, concurrent_fetches or settings.concurrent_fetches)
        self.fetch_timeout = fetch_timeout or settings.fetch_timeout
        self.state = CrawlState.IDLE
        self.dispatched = 0
        self.processed = 0
        self._seed: Optional[str] = None
        self._seed_dispatched = False
        self._cancel_requested = False

    def cancel(self) -> None:
        """Stop after the batch in flight settles; the crawl ends aborted."""
        self._cancel_requested = True

    async def crawl(self, seed_url: str, max_depth: int) -> CrawlResult:
        if self.state is not CrawlState.IDLE:
            raise RuntimeError(f"Scheduler already used (state={self.state.value})")
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        seed = normalize_url(seed_url)

        self._seed = seed
        self.state = CrawlState.RUNNING
        crawl_jobs_total.inc()
        logger.info(
            f"Starting crawl of {seed} with k={max_depth}, budget={self.total_node_budget}, "
            f"concurrency={self.concurrency}, timeout={self.fetch_timeout:.1f}s"
        )
        start_time = time.time()

        frontier = FrontierQueue()
        assembler = GraphAssembler()
        frontier.push(FrontierEntry(seed, 0))
        error: Optional[str] = None

        try:
            while frontier and self.dispatched < self.total_node_budget:
                if self._cancel_requested:
                    logger.info(f"Crawl of {seed} cancelled after {self.processed} pages")
                    self.state = CrawlState.ABORTED
                    break

                width = min(self.concurrency, self.total_node_budget - self.dispatched)
                batch = self._next_batch(frontier, max_depth, width)
                if not batch:
                    break

                self.dispatched += len(batch)
                logger.info(f"Processing batch of {len(batch)} URLs at depth {batch[0].depth}")
                settled = await self._dispatch(batch)
                self._absorb(settled, frontier, assembler, max_depth)

                crawl_frontier_size.set(len(frontier))
                crawl_visited_size.set(len(self.registry))
                logger.info(f"Queue size: {len(frontier)}, Processed: {self.processed}")
        except asyncio.CancelledError:
            self.state = CrawlState.ABORTED
            crawl_jobs_aborted_total.inc()
            raise
        except Exception as e:
            logger.exception(f"Error during crawl of {seed}: {e}")
            self.state = CrawlState.ABORTED
            error = str(e)

        if self.state is CrawlState.RUNNING:
            self.state = CrawlState.COMPLETED
            crawl_jobs_completed_total.inc()
        else:
            crawl_jobs_aborted_total.inc()

        result = assembler.snapshot()
        result.state = self.state
        result.processed = self.processed
        result.error = error
        logger.info(
            f"Crawl {self.state.value} in {time.time() - start_time:.2f}s. "
            f"Nodes: {len(result.nodes)}, Links: {len(result.edges)}"
        )
        return result

    def _next_batch(self, frontier: FrontierQueue, max_depth: int, width: int) -> List[FrontierEntry]:
        batch: List[FrontierEntry] = []
        while len(batch) < width and frontier:
            # A batch never spans two depth levels
            level = batch[0].depth if batch else frontier.peek().depth
            popped = frontier.pop_batch(width - len(batch), depth=level)
            if not popped:
                break
            for entry in popped:
                if entry.depth > max_depth:
                    continue
                # The seed goes out once per crawl even if an earlier session visited it
                if entry.url == self._seed and not self._seed_dispatched:
                    self._seed_dispatched = True
                    self.registry.add(entry.url)
                    batch.append(entry)
                elif self.registry.add(entry.url):
                    batch.append(entry)
        return batch

    async def _fetch_one(self, entry: FrontierEntry) -> PageResult:
        try:
            return await asyncio.wait_for(
                self.fetcher.fetch(entry.url, self.fetch_timeout),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.info(f"Fetch deadline exceeded for {entry.url}")
            return PageResult.failure(entry.url, "timeout")

    async def _dispatch(self, batch: Sequence[FrontierEntry]) -> List[Tuple[FrontierEntry, PageResult]]:
        crawl_inflight_gauge.set(len(batch))
        try:
            outcomes = await asyncio.gather(
                *(self._fetch_one(entry) for entry in batch),
                return_exceptions=True,
            )
        finally:
            crawl_inflight_gauge.set(0)

        settled: List[Tuple[FrontierEntry, PageResult]] = []
        for entry, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Fetcher raised for {entry.url}: {outcome!r}")
                outcome = PageResult.failure(entry.url, str(outcome))
            settled.append((entry, outcome))
        return settled

    def _absorb(
        self,
        settled: Sequence[Tuple[FrontierEntry, PageResult]],
        frontier: FrontierQueue,
        assembler: GraphAssembler,
        max_depth: int,
    ) -> None:
        # Nodes first so edges within the batch resolve
        for entry, page in settled:
            assembler.add_node(GraphNode(id=entry.url, title=page.title or entry.url, favicon=page.favicon))

        for entry, page in settled:
            if page.success and entry.depth < max_depth:
                for link in page.links:
                    try:
                        target = normalize_url(link)
                    except InvalidUrlError:
                        logger.warning(f"Invalid linked URL skipped: {link}")
                        continue
                    assembler.add_edge(GraphEdge(source=entry.url, target=target))
                    if not self.registry.contains(target):
                        frontier.push(FrontierEntry(target, entry.depth + 1))
            self.processed += 1
            crawl_pages_fetched_total.labels(outcome="success" if page.success else "failure").inc()
