import os
from html import escape

import pytest
from fastapi.testclient import TestClient

from threatfeed.schemas.common import TextResult
from threatfeed.services.ingestion.sources import NewsSource, SourceSelectors


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    os.environ["ENV"] = "test"
    os.environ["LLM_ENABLED"] = "false"
    os.environ["LLM_API_KEY"] = ""
    os.environ["LLM_MAX_RETRIES"] = "1"
    os.environ["BLOCK_PRIVATE_HOSTS"] = "false"
    os.environ["ALLOWED_FETCH_HOSTS"] = ""
    os.environ["OBSERVABILITY_ENABLED"] = "false"

    from threatfeed.core.config import get_settings

    get_settings.cache_clear()
    yield


@pytest.fixture(autouse=True)
def fresh_settings():
    from threatfeed.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client(setup_test_env):
    from threatfeed.main import app

    with TestClient(app) as test_client:
        yield test_client


def make_source(name: str = "Example Security", url: str | None = None) -> NewsSource:
    return NewsSource(
        name=name,
        url=url or f"https://{name.lower().replace(' ', '-')}.example.com/",
        selectors=SourceSelectors(
            listing="article.card",
            title="h2",
            excerpt="p.summary",
            link="a",
            date="time",
            date_attr="datetime",
            article="div.body",
        ),
    )


def listing_html(entries: list[dict]) -> str:
    cards = []
    for entry in entries:
        cards.append(
            '<article class="card">'
            f'<h2>{escape(entry.get("title", ""))}</h2>'
            f'<p class="summary">{escape(entry.get("excerpt", ""))}</p>'
            f'<a href="{escape(entry.get("url", ""))}">Read more</a>'
            f'<time datetime="{escape(entry.get("date", ""))}"></time>'
            "</article>"
        )
    return f"<html><body>{''.join(cards)}</body></html>"


@pytest.fixture
def source_factory():
    return make_source


@pytest.fixture
def listing_factory():
    return listing_html


@pytest.fixture
def fake_web(monkeypatch):
    """Route fetch_page / fetch_article to in-memory pages.

    ``pages`` maps listing URLs to markup; unknown URLs fail like an
    unreachable host. ``articles`` maps article URLs to full text.
    """
    from threatfeed.services.ingestion import fetcher

    web = {"pages": {}, "articles": {}, "article_calls": []}

    async def fake_fetch_page(url: str) -> TextResult:
        if url in web["pages"]:
            return TextResult.success(web["pages"][url])
        return TextResult.failure("ConnectError: unreachable")

    async def fake_fetch_article(url: str, selector: str | None = None) -> TextResult:
        web["article_calls"].append((url, selector))
        text = web["articles"].get(url)
        if text:
            return TextResult.success(text)
        return TextResult.failure("no content")

    monkeypatch.setattr(fetcher, "fetch_page", fake_fetch_page)
    monkeypatch.setattr(fetcher, "fetch_article", fake_fetch_article)
    return web


@pytest.fixture
def fake_summarizer(monkeypatch):
    from threatfeed.services.llm import client as llm_client

    calls: list[str] = []

    async def fake_summarize(text: str) -> TextResult:
        calls.append(text)
        return TextResult.success(f"Summary of {len(text)} chars.")

    monkeypatch.setattr(llm_client, "summarize", fake_summarize)
    return calls
