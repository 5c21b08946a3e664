import asyncio

import httpx
import pytest

from threatfeed.services.ingestion import fetcher

ARTICLE_HTML = """
<html><head><style>.x{}</style></head><body>
<nav>Menu</nav>
<div class="articlebody">
<p>First paragraph about the <a href="#">Widget</a> flaw.</p>
<p>Second paragraph with CVSS Score: 9.8.</p>
<script>trackVisitor()</script>
</div>
</body></html>
"""


@pytest.fixture
def mock_transport(monkeypatch):
    requests: list[httpx.Request] = []
    routes: dict[str, httpx.Response] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        url = str(request.url)
        if url in routes:
            return routes[url]
        raise httpx.ConnectError("unreachable", request=request)

    real_build_client = fetcher.build_client
    monkeypatch.setattr(
        fetcher, "build_client", lambda: real_build_client(transport=httpx.MockTransport(handler))
    )
    return routes, requests


def test_fetch_article_with_selector(mock_transport):
    routes, requests = mock_transport
    routes["https://news.example.com/a"] = httpx.Response(200, text=ARTICLE_HTML)

    result = asyncio.run(fetcher.fetch_article("https://news.example.com/a", ".articlebody"))

    assert result.ok
    assert "First paragraph about the Widget flaw." in result.text
    assert "Second paragraph with CVSS Score: 9.8." in result.text
    assert "Menu" not in result.text
    assert "trackVisitor" not in result.text
    assert "\n" in result.text
    assert requests[0].headers["User-Agent"] == "Mozilla/5.0"


def test_fetch_article_body_truncated(mock_transport, monkeypatch):
    routes, _ = mock_transport
    monkeypatch.setenv("ARTICLE_CHAR_LIMIT", "50")
    routes["https://news.example.com/long"] = httpx.Response(
        200, text=f"<html><body><p>{'x' * 500}</p></body></html>"
    )

    result = asyncio.run(fetcher.fetch_article("https://news.example.com/long"))

    assert result.ok
    assert result.text == "x" * 50


def test_fetch_article_default_limit_is_3000(mock_transport):
    routes, _ = mock_transport
    routes["https://news.example.com/long"] = httpx.Response(
        200, text=f"<html><body><p>{'y' * 5000}</p></body></html>"
    )

    result = asyncio.run(fetcher.fetch_article("https://news.example.com/long"))

    assert len(result.text) == 3000


def test_fetch_article_selector_without_match_fails(mock_transport):
    routes, _ = mock_transport
    routes["https://news.example.com/a"] = httpx.Response(200, text=ARTICLE_HTML)

    result = asyncio.run(fetcher.fetch_article("https://news.example.com/a", ".entry-content"))

    assert not result.ok
    assert result.text_or_empty == ""
    assert ".entry-content" in result.reason


def test_fetch_article_http_error_is_failure(mock_transport):
    routes, _ = mock_transport
    routes["https://news.example.com/gone"] = httpx.Response(503, text="busy")

    result = asyncio.run(fetcher.fetch_article("https://news.example.com/gone", ".articlebody"))

    assert not result.ok
    assert "HTTPStatusError" in result.reason


def test_fetch_page_network_error_is_failure(mock_transport):
    result = asyncio.run(fetcher.fetch_page("https://down.example.com/"))
    assert not result.ok
    assert "ConnectError" in result.reason


def test_fetch_page_refuses_unsafe_url(mock_transport):
    _, requests = mock_transport
    result = asyncio.run(fetcher.fetch_page("file:///etc/passwd"))
    assert not result.ok
    assert result.reason.startswith("refused url")
    assert requests == []


def test_redirects_are_followed_within_allowed_hosts(mock_transport, monkeypatch):
    routes, requests = mock_transport
    monkeypatch.setenv("ALLOWED_FETCH_HOSTS", "news.example.com")
    routes["https://news.example.com/old"] = httpx.Response(301, headers={"Location": "https://news.example.com/a"})
    routes["https://news.example.com/a"] = httpx.Response(200, text=ARTICLE_HTML)

    result = asyncio.run(fetcher.fetch_article("https://news.example.com/old", ".articlebody"))

    assert result.ok
    assert [str(request.url) for request in requests] == [
        "https://news.example.com/old",
        "https://news.example.com/a",
    ]


def test_redirect_to_disallowed_host_is_refused(mock_transport, monkeypatch):
    routes, requests = mock_transport
    monkeypatch.setenv("ALLOWED_FETCH_HOSTS", "news.example.com")
    routes["https://news.example.com/a"] = httpx.Response(302, headers={"Location": "https://evil.example.com/steal"})

    result = asyncio.run(fetcher.fetch_page("https://news.example.com/a"))

    assert not result.ok
    assert result.reason.startswith("refused url")
    assert "evil.example.com" in result.reason
    assert [str(request.url) for request in requests] == ["https://news.example.com/a"]


def test_redirect_to_private_address_is_refused(mock_transport, monkeypatch):
    from threatfeed.utils import network

    routes, requests = mock_transport
    monkeypatch.setenv("BLOCK_PRIVATE_HOSTS", "true")
    monkeypatch.setattr(network, "_is_private_host", lambda host: host == "169.254.169.254")
    routes["https://news.example.com/a"] = httpx.Response(
        302, headers={"Location": "http://169.254.169.254/latest/meta-data/"}
    )

    result = asyncio.run(fetcher.fetch_page("https://news.example.com/a"))

    assert not result.ok
    assert result.reason.startswith("refused url")
    assert len(requests) == 1


def test_fetch_article_without_url():
    result = asyncio.run(fetcher.fetch_article("", ".articlebody"))
    assert not result.ok
    assert result.reason == "missing url"


def test_build_client_identifies_as_browser():
    client = fetcher.build_client()
    try:
        assert client.headers["User-Agent"] == "Mozilla/5.0"
        assert client.follow_redirects is True
        assert fetcher._check_request_url in client.event_hooks["request"]
    finally:
        asyncio.run(client.aclose())
