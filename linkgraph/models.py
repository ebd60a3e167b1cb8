from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime, timezone

from linkgraph.config import settings
from linkgraph.graph import CrawlResult


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)

# Crawl request
class CrawlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    k: int = Field(
        default=settings.default_max_depth,
        ge=0,
        le=settings.max_depth_limit,
        validation_alias=AliasChoices("k", "maxDepth", "max_depth"),
    )
    reset: bool = Field(default=False, validation_alias=AliasChoices("reset", "resetBeforeCrawl"))

class GraphNodeModel(BaseModel):
    id: str
    title: str
    favicon: Optional[str] = None

class GraphLinkModel(BaseModel):
    source: str
    target: str

# Crawl response: links reference node ids as plain strings
class GraphResponse(BaseModel):
    nodes: List[GraphNodeModel] = Field(default_factory=list)
    links: List[GraphLinkModel] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: CrawlResult) -> "GraphResponse":
        return cls(
            nodes=[GraphNodeModel(id=n.id, title=n.title, favicon=n.favicon) for n in result.nodes],
            links=[GraphLinkModel(source=e.source, target=e.target) for e in result.edges],
        )

class ResetResponse(BaseModel):
    message: str = "Cache cleared"

class MessageResponse(BaseModel):
    message: str

class ErrorResponse(BaseModel):
    error: str
    stack: Optional[str] = None

class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str = "1.0.0"
    timestamp: datetime = Field(default_factory=utc_now)
