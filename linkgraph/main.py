from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import sys
import traceback
from loguru import logger

from linkgraph.config import settings
from linkgraph.fetcher import create_fetcher
from linkgraph.frontier import visited_registry
from linkgraph.metrics import crawl_visited_size, metrics_response
from linkgraph.models import (
    CrawlRequest, GraphResponse, ResetResponse, MessageResponse,
    ErrorResponse, HealthResponse,
)
from linkgraph.scheduler import CrawlScheduler
from linkgraph.urls import InvalidUrlError, normalize_url

logger.remove()
logger.add(sys.stderr, level=settings.log_level.upper())

# Shared page fetcher; warmed up at startup, otherwise launched on first use
page_fetcher = create_fetcher()

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting LinkGraph API ({settings.fetcher} fetcher, environment={settings.environment})")
    try:
        await page_fetcher.start()
    except Exception as e:
        logger.warning(f"Page fetcher warm-up failed, will retry on first fetch: {e}")
    try:
        yield
    finally:
        await page_fetcher.close()
        logger.info("LinkGraph API shutdown complete")

app = FastAPI(
    title="LinkGraph API",
    description="Bounded-depth link graph crawler",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


def error_response(status_code: int, exc: Exception, *, include_stack: bool = False) -> JSONResponse:
    body = ErrorResponse(error=str(exc))
    if include_stack and settings.is_development:
        body.stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(InvalidUrlError)
async def invalid_url_handler(request: Request, exc: InvalidUrlError):
    logger.warning(f"Rejected {request.url.path} request: {exc}")
    return error_response(400, exc)

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Error in {request.url.path}: {exc}")
    return error_response(500, exc, include_stack=True)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse()

@app.get("/api/test", response_model=MessageResponse)
async def test_endpoint():
    return MessageResponse(message="Server is running!")

@app.get("/metrics")
async def metrics():
    content, media_type = metrics_response()
    return Response(content=content, media_type=media_type)

@app.post(
    "/api/crawl",
    response_model=GraphResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@limiter.limit(f"{settings.rate_limit_requests}/{settings.rate_limit_window}seconds")
async def crawl(request: Request, crawl_request: CrawlRequest):
    """Crawl up to ``k`` hops from ``url`` and return the link graph.

    Individual page failures and scheduler faults still produce a 200 with
    whatever graph was assembled; only a malformed seed (400) or an error
    outside the crawl loop (500) is reported as an error.
    """
    logger.info(f"Received request to crawl: {crawl_request.url} with k = {crawl_request.k}")
    if crawl_request.reset:
        logger.info("Resetting URL cache")
        visited_registry.clear()

    seed = normalize_url(crawl_request.url)
    scheduler = CrawlScheduler(page_fetcher)
    result = await scheduler.crawl(seed, crawl_request.k)

    logger.info(f"Sending response with nodes: {len(result.nodes)}, links: {len(result.edges)}")
    return GraphResponse.from_result(result)

@app.post("/api/reset", response_model=ResetResponse)
async def reset_cache():
    logger.info("Resetting URL cache")
    visited_registry.clear()
    crawl_visited_size.set(0)
    return ResetResponse()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "linkgraph.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development
    )
