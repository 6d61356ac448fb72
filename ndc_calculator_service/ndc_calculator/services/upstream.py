"""
Shared path for catalog lookups: cache -> coalesce -> retry -> HTTP GET.
"""
import logging
from typing import Any, Callable, Dict, Optional

import requests

from ndc_calculator.core.settings import REQUEST_TIMEOUT_S
from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.coalescer import RequestCoalescer
from ndc_calculator.services.errors import PayloadValidationError, UpstreamError
from ndc_calculator.services.retry import with_retry

logger = logging.getLogger(__name__)

_MISSING = object()


def get_json(
    session: requests.Session,
    url: str,
    *,
    service: str,
    params: Optional[Dict[str, Any]] = None,
    not_found: Any = None,
    timeout: float = REQUEST_TIMEOUT_S,
) -> Any:
    """GET and decode. 404 -> `not_found`; other >= 400 -> UpstreamError carrying only the status."""
    r = session.get(url, params=params, timeout=timeout)
    if r.status_code == 404:
        return not_found
    if r.status_code >= 400:
        raise UpstreamError(f"{service} returned {r.status_code}", status_code=r.status_code, service=service)
    try:
        return r.json()
    except ValueError as exc:
        raise PayloadValidationError(f"{service} returned a non-JSON body") from exc


class CachedFetcher:
    def __init__(
        self,
        cache: TTLCache,
        coalescer: RequestCoalescer,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        self.cache = cache
        self.coalescer = coalescer
        self._retry_kwargs: Dict[str, Any] = {"sleep": sleep} if sleep is not None else {}

    def fetch(
        self,
        key: str,
        ttl_seconds: float,
        load: Callable[[], Any],
        *,
        cache_if: Callable[[Any], bool] = lambda value: value is not None,
    ) -> Any:
        cached = self.cache.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug("Cache hit: %s", key)
            return cached

        def run() -> Any:
            value = with_retry(load, **self._retry_kwargs)
            if cache_if(value):
                self.cache.set(key, value, ttl_seconds)
            return value

        return self.coalescer.dedupe(key, run)
