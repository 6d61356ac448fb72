import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from ndc_calculator.core.settings import (
    AUTOCOMPLETE_MIN_CHARS,
    RXNORM_BASE_URL,
    RXNORM_NAME_TTL,
    RXNORM_PROPERTIES_TTL,
)
from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.cache_keys import (
    normalize_key,
    rxnorm_name_key,
    rxnorm_properties_key,
    rxnorm_suggestions_key,
)
from ndc_calculator.services.coalescer import RequestCoalescer
from ndc_calculator.services.errors import PayloadValidationError, UpstreamError
from ndc_calculator.services.upstream import CachedFetcher, get_json

logger = logging.getLogger(__name__)


class RxNormClient:
    """Drug name -> RxCUI lookups against the NLM RxNav REST API."""

    def __init__(
        self,
        session: requests.Session,
        cache: TTLCache,
        coalescer: RequestCoalescer,
        base_url: str = RXNORM_BASE_URL,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.fetcher = CachedFetcher(cache, coalescer, sleep=sleep)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        data = get_json(self.session, f"{self.base_url}{path}", service="rxnorm", params=params)
        if data is not None and not isinstance(data, dict):
            raise PayloadValidationError("rxnorm returned an unexpected body")
        return data

    def search_by_name(self, drug_name: str) -> Optional[str]:
        """First RxCUI for the name, or None. Misses are not cached."""
        name = normalize_key(drug_name)
        if not name:
            return None

        def load() -> Optional[str]:
            data = self._get("/rxcui.json", {"name": drug_name.strip()}) or {}
            ids = (data.get("idGroup") or {}).get("rxnormId") or []
            return str(ids[0]) if ids else None

        rxcui = self.fetcher.fetch(rxnorm_name_key(drug_name), RXNORM_NAME_TTL, load)
        if rxcui:
            logger.info("Found RxCUI for %s: %s", drug_name, rxcui)
        else:
            logger.info("Drug not found: %s", drug_name)
        return rxcui

    def _suggestions(self, name: str) -> List[str]:
        def load() -> List[str]:
            data = self._get("/spellingsuggestions.json", {"name": name.strip()}) or {}
            group = (data.get("suggestionGroup") or {}).get("suggestionList") or {}
            return [s for s in (group.get("suggestion") or []) if isinstance(s, str)]

        return self.fetcher.fetch(rxnorm_suggestions_key(name), RXNORM_NAME_TTL, load, cache_if=bool)

    def spelling_suggestions(self, drug_name: str) -> List[str]:
        """Best effort; lookup failures give an empty list."""
        try:
            return self._suggestions(drug_name)
        except (UpstreamError, PayloadValidationError, requests.RequestException) as exc:
            logger.warning("Spelling suggestions unavailable for %s (%s)", drug_name, type(exc).__name__)
            return []

    def autocomplete(self, query: str) -> List[str]:
        """
        Name completions for a partly typed drug name. Short queries give []
        without a call; upstream failures propagate.
        """
        text = query.strip()
        if len(text) < AUTOCOMPLETE_MIN_CHARS:
            return []
        return self._suggestions(text)

    def get_properties(self, rxcui: str) -> Optional[Dict[str, Any]]:
        def load() -> Optional[Dict[str, Any]]:
            data = self._get(f"/rxcui/{rxcui.strip()}/properties.json")
            props = (data or {}).get("properties")
            if not isinstance(props, dict):
                return None
            return {"name": props.get("name"), "synonym": props.get("synonym"), "tty": props.get("tty")}

        return self.fetcher.fetch(rxnorm_properties_key(rxcui), RXNORM_PROPERTIES_TTL, load)
