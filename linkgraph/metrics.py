from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Crawl metrics
crawl_jobs_total = Counter("crawl_jobs_total", "Total crawls started")
crawl_jobs_completed_total = Counter("crawl_jobs_completed_total", "Total crawls that ran to completion")
crawl_jobs_aborted_total = Counter("crawl_jobs_aborted_total", "Total crawls aborted by a scheduler fault or cancel")
crawl_pages_fetched_total = Counter(
    "crawl_pages_fetched_total",
    "Total pages processed across crawls",
    ["outcome"],
)
crawl_frontier_size = Gauge("crawl_frontier_size", "Current frontier queue size")
crawl_inflight_gauge = Gauge("crawl_inflight", "Current in-flight fetch count")
crawl_visited_size = Gauge("crawl_visited_size", "URLs currently held in the visited registry")
page_fetch_duration_seconds = Histogram(
    "page_fetch_duration_seconds",
    "Page fetch duration",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 3, 5, 10)
)

def metrics_response():
    content = generate_latest()
    return content, CONTENT_TYPE_LATEST
