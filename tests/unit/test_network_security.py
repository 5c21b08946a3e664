import pytest

from threatfeed.utils import network
from threatfeed.utils.network import HostNotAllowedError, UnsafeUrlError, assert_allowed_url


def test_blocks_unsafe_scheme():
    with pytest.raises(UnsafeUrlError):
        assert_allowed_url("file:///etc/passwd")


def test_blocks_missing_host():
    with pytest.raises(UnsafeUrlError):
        assert_allowed_url("https:///no-host")


def test_allows_https_domain_when_allowlist_empty():
    assert_allowed_url("https://example.com/article")


def test_allowlist_rejects_other_hosts(monkeypatch):
    monkeypatch.setenv("ALLOWED_FETCH_HOSTS", "thehackernews.com, krebsonsecurity.com")
    assert_allowed_url("https://krebsonsecurity.com/2025/10/story/")
    with pytest.raises(HostNotAllowedError):
        assert_allowed_url("https://evil.example.com/")


def test_private_hosts_blocked_when_enabled(monkeypatch):
    monkeypatch.setenv("BLOCK_PRIVATE_HOSTS", "true")
    monkeypatch.setattr(network, "_is_private_host", lambda host: host == "intranet.local")
    assert_allowed_url("https://example.com/")
    with pytest.raises(UnsafeUrlError):
        assert_allowed_url("http://intranet.local/admin")


def test_loopback_address_is_private():
    assert network._is_private_host("127.0.0.1")
