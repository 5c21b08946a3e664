from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from threatfeed.core.config import get_settings
from threatfeed.core.observability import ARTICLE_FETCH_COUNT
from threatfeed.schemas.common import TextResult
from threatfeed.utils.network import assert_allowed_url

logger = logging.getLogger(__name__)

NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]


async def _check_request_url(request: httpx.Request) -> None:
    # Runs for every redirect hop, not only the first URL.
    assert_allowed_url(str(request.url))


def build_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=settings.ingest_http_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": settings.fetch_user_agent},
        event_hooks={"request": [_check_request_url]},
        transport=transport,
    )


def parse_markup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NON_CONTENT_TAGS):
        tag.decompose()
    return soup


def _extract_text(html: str, selector: str | None, char_limit: int) -> str:
    soup = parse_markup(html)
    if selector:
        return "\n".join(node.get_text().strip() for node in soup.select(selector)).strip()
    root = soup.body or soup
    return root.get_text().strip()[:char_limit]


async def fetch_page(url: str) -> TextResult:
    """GET a page and return its markup, or a failure describing why not."""
    try:
        assert_allowed_url(url)
        async with build_client() as client:
            response = await client.get(url)
            response.raise_for_status()
    except ValueError as exc:
        return TextResult.failure(f"refused url: {exc}")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return TextResult.failure(f"{type(exc).__name__}: {exc}")
    return TextResult.success(response.text)


async def fetch_article(url: str, selector: str | None = None) -> TextResult:
    """Fetch a linked article and return its readable text.

    With a selector, the text of every matching node is returned; without
    one, the body text truncated to ``article_char_limit``. Failures never
    raise: callers get a failed result and fall back to the listing excerpt.
    """
    if not url:
        ARTICLE_FETCH_COUNT.labels("failure").inc()
        return TextResult.failure("missing url")

    page = await fetch_page(url)
    if not page.ok:
        logger.debug("Article fetch failed for %s: %s", url, page.reason)
        ARTICLE_FETCH_COUNT.labels("failure").inc()
        return page

    try:
        text = _extract_text(page.text, selector, get_settings().article_char_limit)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Article parse failed for %s: %s", url, exc)
        ARTICLE_FETCH_COUNT.labels("failure").inc()
        return TextResult.failure(f"parse error: {exc}")

    if not text:
        ARTICLE_FETCH_COUNT.labels("empty").inc()
        return TextResult.failure(f"no content matched {selector or 'body'}")

    ARTICLE_FETCH_COUNT.labels("success").inc()
    return TextResult.success(text)
