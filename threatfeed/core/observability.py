import logging

from prometheus_client import Counter, Histogram

from threatfeed.core.config import get_settings

REQUEST_COUNT = Counter(
    "threatfeed_api_requests_total",
    "Total API requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "threatfeed_api_request_latency_seconds",
    "API request latency",
    ["method", "path"],
)

SOURCE_FETCH_COUNT = Counter(
    "threatfeed_source_fetch_total",
    "Listing page fetches per source",
    ["source", "status"],
)

ARTICLE_FETCH_COUNT = Counter(
    "threatfeed_article_fetch_total",
    "Full article fetches",
    ["status"],
)

LLM_CALL_COUNT = Counter(
    "threatfeed_llm_calls_total",
    "Summarization calls",
    ["provider", "status"],
)

LLM_LATENCY = Histogram(
    "threatfeed_llm_latency_seconds",
    "LLM call latency",
    ["provider", "model"],
)

SUMMARY_CACHE_HITS = Counter(
    "threatfeed_summary_cache_hits_total",
    "Summaries served from the per-run cache",
)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    settings = get_settings()
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
