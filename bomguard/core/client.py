from datetime import timedelta
from pathlib import Path

import requests
import requests_cache
import structlog
from requests.adapters import HTTPAdapter
from requests_cache import DO_NOT_CACHE
from urllib3.util.retry import Retry

logger = structlog.get_logger('client')

# Component versions and their origins are immutable once published, so
# those reads are cached. Anything describing current state is not.
NEVER_CACHED_URLS = {
    '*/api/current-user*': DO_NOT_CACHE,
    '*/notifications*': DO_NOT_CACHE,
    '*/api/projects*': DO_NOT_CACHE,
    '*/policy-status*': DO_NOT_CACHE,
    '*/vulnerabilities*': DO_NOT_CACHE,
    '*/api/storage/*': DO_NOT_CACHE,
    '*/api/search/*': DO_NOT_CACHE,
}


def _logging_hook(response, *args, **kwargs):
    if getattr(response, '_logged', False):
        return
    response._logged = True

    is_cached = getattr(response, 'from_cache', False)
    log_kwargs = {
        'method': response.request.method,
        'url': response.url,
        'status': response.status_code,
        'elapsed': f"{response.elapsed.total_seconds():.3f}s",
        'cached': is_cached,
    }
    if is_cached:
        logger.debug('HTTP Request', _style='dim', **log_kwargs)
    elif response.status_code >= 400:
        logger.warning('HTTP Request', **log_kwargs)
    else:
        logger.debug('HTTP Request', **log_kwargs)


def get_http_client(
    cache_name: str | None = '.requests-cache/bomguard.sqlite3',
    expire_after: int = 86400,
    retries: int = 3,
    pool_size: int = 20,
    verify_ssl: bool = True,
) -> requests.Session:
    """
    Returns a requests session with retry logic and a pooled adapter.

    With a cache name the session is a CachedSession that only caches
    immutable GET lookups; pass None for a plain session.
    """
    if cache_name:
        cache_path = Path(cache_name)
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        session: requests.Session = requests_cache.CachedSession(
            cache_name=cache_name,
            backend='sqlite',
            expire_after=timedelta(seconds=expire_after),
            allowable_codes=[200],
            allowable_methods=['GET'],
            urls_expire_after=NEVER_CACHED_URLS,
        )
    else:
        session = requests.Session()

    session.verify = verify_ssl
    session.hooks['response'].append(_logging_hook)

    # Writes (POST/PUT/DELETE) are retried only on connection errors
    retry_strategy = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=['GET', 'HEAD'],
    )

    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=retry_strategy,
    )

    session.mount('https://', adapter)
    session.mount('http://', adapter)

    logger.debug(
        'Initialized HTTP Client',
        cache_name=cache_name,
        expire_after=expire_after,
        pool_size=pool_size,
    )

    return session
