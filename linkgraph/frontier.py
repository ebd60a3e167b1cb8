"""Frontier and visited-set for the crawl scheduler.

``VisitedRegistry`` is process-wide state shared by every crawl in the
session; ``FrontierQueue`` belongs to a single crawl. Clearing the registry
while a crawl is running is not guarded and is up to the caller.
"""
from __future__ import annotations
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional


@dataclass(frozen=True)
class FrontierEntry:
    url: str
    depth: int

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")


class VisitedRegistry:
    def __init__(self) -> None:
        self._urls: set[str] = set()
        self._lock = threading.Lock()

    def contains(self, url: str) -> bool:
        with self._lock:
            return url in self._urls

    def add(self, url: str) -> bool:
        """Insert ``url``; True only for the call that inserted it."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    def clear(self) -> None:
        with self._lock:
            self._urls.clear()

    def __contains__(self, url: str) -> bool:
        return self.contains(url)

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)


class FrontierQueue:
    """FIFO of frontier entries; only the coordinating task touches it.

    Children are pushed after their parent, so depths along the queue never
    decrease.
    """

    def __init__(self) -> None:
        self._queue: Deque[FrontierEntry] = deque()

    def push(self, entry: FrontierEntry) -> None:
        self._queue.append(entry)

    def peek(self) -> Optional[FrontierEntry]:
        return self._queue[0] if self._queue else None

    def pop_batch(self, max_size: int, depth: Optional[int] = None) -> List[FrontierEntry]:
        """Pop up to ``max_size`` entries, stopping at the first one whose
        depth differs from ``depth`` when it is given."""
        batch: List[FrontierEntry] = []
        while self._queue and len(batch) < max_size:
            if depth is not None and self._queue[0].depth != depth:
                break
            batch.append(self._queue.popleft())
        return batch

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)


# Shared across crawls until explicitly reset
visited_registry = VisitedRegistry()
