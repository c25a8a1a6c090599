import requests
import requests_cache

from bomguard.core.client import get_http_client


def test_get_http_client_is_cached_by_default(tmp_path):
    """A cache name yields a CachedSession that only caches GET lookups."""
    session = get_http_client(cache_name=str(tmp_path / 'cache.sqlite3'))
    assert isinstance(session, requests_cache.CachedSession)
    assert 'POST' not in session.settings.allowable_methods


def test_get_http_client_without_cache():
    session = get_http_client(cache_name=None)
    assert type(session) is requests.Session


def test_get_http_client_has_adapters():
    """Test session has http and https adapters mounted."""
    session = get_http_client(cache_name=None)
    assert 'https://' in session.adapters
    assert 'http://' in session.adapters


def test_get_http_client_retries_reads_only():
    session = get_http_client(cache_name=None, retries=5)
    retry = session.get_adapter('https://example.com').max_retries
    assert retry.total == 5
    assert 503 in retry.status_forcelist
    assert 'POST' not in retry.allowed_methods


def test_get_http_client_verify_ssl():
    session = get_http_client(cache_name=None, verify_ssl=False)
    assert session.verify is False
