from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class CrawlState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class GraphNode:
    id: str
    title: str
    favicon: Optional[str] = None


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str


@dataclass
class CrawlResult:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    state: CrawlState = CrawlState.COMPLETED
    processed: int = 0
    error: Optional[str] = None

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def edge_pairs(self) -> set[tuple[str, str]]:
        return {(e.source, e.target) for e in self.edges}


class GraphAssembler:
    """Accumulates nodes and edges; dangling edges are dropped on snapshot."""

    def __init__(self) -> None:
        self._nodes: Dict[str, GraphNode] = {}
        # dict keeps first-seen order
        self._edges: Dict[Tuple[str, str], GraphEdge] = {}

    def add_node(self, node: GraphNode) -> bool:
        if node.id in self._nodes:
            return False
        self._nodes[node.id] = node
        return True

    def add_edge(self, edge: GraphEdge) -> bool:
        key = (edge.source, edge.target)
        if key in self._edges:
            return False
        self._edges[key] = edge
        return True

    def snapshot(self) -> CrawlResult:
        edges = [
            e for e in self._edges.values()
            if e.source in self._nodes and e.target in self._nodes
        ]
        return CrawlResult(nodes=list(self._nodes.values()), edges=edges)

    def __len__(self) -> int:
        return len(self._nodes)
