import asyncio
from collections.abc import Awaitable, Callable

from threatfeed.core.observability import SUMMARY_CACHE_HITS
from threatfeed.schemas.common import TextResult


class SummaryCache:
    """Summaries for one aggregation run, keyed by article URL.

    Keys are URLs, never content: two articles with identical text are still
    summarized separately. A per-key lock makes lookup-or-populate atomic, so
    concurrent entries sharing a URL reach the backend once. Failed results
    are cached as well. No eviction; the cache lives as long as its run.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TextResult] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> TextResult | None:
        return self._entries.get(key)

    async def get_or_create(self, key: str, factory: Callable[[], Awaitable[TextResult]]) -> TextResult:
        if not key:
            return await factory()

        cached = self._entries.get(key)
        if cached is not None:
            SUMMARY_CACHE_HITS.inc()
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._entries.get(key)
            if cached is not None:
                SUMMARY_CACHE_HITS.inc()
                return cached
            result = await factory()
            self._entries[key] = result
            return result
