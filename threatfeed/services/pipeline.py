import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from threatfeed.core.config import get_settings
from threatfeed.core.observability import SOURCE_FETCH_COUNT
from threatfeed.core.time import now_utc
from threatfeed.schemas.common import RawEntry, ThreatItem
from threatfeed.services.ingestion import fetcher
from threatfeed.services.ingestion.sources import SOURCE_REGISTRY, NewsSource
from threatfeed.services.llm import client as llm_client
from threatfeed.services.llm.cache import SummaryCache
from threatfeed.services.normalize import classify_severity, ensure_long_description, extract_cvss
from threatfeed.utils.dates import coerce_published

logger = logging.getLogger(__name__)


@dataclass
class AggregationRun:
    items: list[ThreatItem] = field(default_factory=list)
    source_counts: dict[str, int] = field(default_factory=dict)
    failed_sources: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items


async def enrich_entry(
    entry: RawEntry, source: NewsSource, cache: SummaryCache, fetched_at: datetime | None = None
) -> ThreatItem:
    """Turn one listing entry into a ThreatItem.

    Full article text drives the summary, description and CVSS lookup. When
    the article can't be fetched, the listing excerpt stands in for all three.
    """
    article = await fetcher.fetch_article(entry.url, source.selectors.article)
    full_text = article.text_or_empty

    if full_text:
        summary = (await llm_client.summarize_cached(full_text, entry.url, cache)).text_or_empty
    else:
        summary = entry.excerpt

    cvss_score = extract_cvss(full_text)
    if cvss_score is None:
        cvss_score = extract_cvss(entry.excerpt)

    return ThreatItem(
        id=entry.url,
        title=entry.title,
        description=ensure_long_description(full_text, entry.excerpt or summary),
        severity=classify_severity(f"{entry.title} {entry.excerpt}"),
        ai_summary=summary or entry.excerpt,
        date_published=coerce_published(entry.published_hint, fallback=fetched_at),
        source=source.name,
        url=entry.url,
        cvss_score=cvss_score,
    )


async def collect_source(
    source: NewsSource,
    cache: SummaryCache,
    semaphore: asyncio.Semaphore,
    fetched_at: datetime | None = None,
) -> list[ThreatItem] | None:
    """Fetch, extract and enrich one source. Returns None if the source failed."""
    try:
        page = await fetcher.fetch_page(source.url)
        if not page.ok:
            logger.warning("Error fetching from %s: %s", source.name, page.reason)
            SOURCE_FETCH_COUNT.labels(source.name, "failure").inc()
            return None
        entries = source.extract(page.text)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error reading listing from %s: %s", source.name, exc)
        SOURCE_FETCH_COUNT.labels(source.name, "failure").inc()
        return None
    SOURCE_FETCH_COUNT.labels(source.name, "success").inc()

    async def _bounded(entry: RawEntry) -> ThreatItem:
        async with semaphore:
            return await enrich_entry(entry, source, cache, fetched_at)

    results = await asyncio.gather(*(_bounded(entry) for entry in entries), return_exceptions=True)
    items: list[ThreatItem] = []
    for entry, result in zip(entries, results, strict=True):
        if isinstance(result, Exception):
            logger.warning("Dropping entry %r from %s: %s", entry.url or entry.title, source.name, result)
            continue
        if isinstance(result, BaseException):
            raise result
        items.append(result)
    logger.debug("Collected %d/%d entries from %s", len(items), len(entries), source.name)
    return items


def finalize_items(items: Sequence[ThreatItem], now: datetime | None = None) -> list[ThreatItem]:
    """Drop invalid items, pin timestamps to UTC and re-normalize descriptions."""
    now = now or now_utc()
    finalized: list[ThreatItem] = []
    for item in items:
        if not item.is_valid:
            continue
        finalized.append(
            item.model_copy(
                update={
                    "date_published": coerce_published(item.date_published, fallback=now),
                    "description": ensure_long_description(item.description, item.ai_summary),
                }
            )
        )
    return finalized


async def aggregate_threats(
    sources: Sequence[NewsSource] | None = None,
    limit: int | None = None,
    cache: SummaryCache | None = None,
) -> AggregationRun:
    """Run every source in registry order and merge the results.

    Sources run one after another; entries within a source are enriched
    concurrently up to ``enrichment_concurrency``. A failing source is logged
    and skipped. Each call gets its own summary cache unless one is passed.
    """
    settings = get_settings()
    if sources is None:
        sources = SOURCE_REGISTRY
    if cache is None:
        cache = SummaryCache()
    semaphore = asyncio.Semaphore(settings.enrichment_concurrency)
    started = now_utc()

    run = AggregationRun()
    collected: list[ThreatItem] = []
    for source in sources:
        items = await collect_source(source, cache, semaphore, fetched_at=started)
        if items is None:
            run.failed_sources.append(source.name)
            continue
        run.source_counts[source.name] = len(items)
        collected.extend(items)

    run.items = finalize_items(collected, now=started)
    if limit is not None:
        run.items = run.items[:limit]

    logger.info(
        "Aggregated %d items from %d sources (%d failed: %s)",
        len(run.items),
        len(run.source_counts),
        len(run.failed_sources),
        ", ".join(run.failed_sources) or "none",
    )
    return run


async def fetch_latest_threats() -> AggregationRun:
    return await aggregate_threats(limit=get_settings().listing_limit)


async def fetch_all_threats() -> AggregationRun:
    return await aggregate_threats()
