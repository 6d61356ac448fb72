import logging
import re
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests

from ndc_calculator.core.settings import (
    AUTOCOMPLETE_LIMIT,
    AUTOCOMPLETE_MIN_CHARS,
    AUTOCOMPLETE_TTL,
    FDA_API_KEY,
    FDA_NDC_URL,
    FDA_PACKAGES_TTL,
    NDC_AUTOCOMPLETE_MIN_CHARS,
)
from ndc_calculator.schemas.models import PackageCandidate
from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.cache_keys import (
    fda_generic_packages_key,
    fda_generic_prefix_key,
    fda_ndc_prefix_key,
    fda_product_packages_key,
    fda_rxcui_packages_key,
)
from ndc_calculator.services.coalescer import RequestCoalescer
from ndc_calculator.services.errors import PayloadValidationError
from ndc_calculator.services.ndc import normalize_ndc, product_ndc_variants
from ndc_calculator.services.package_parser import parse_package_description
from ndc_calculator.services.rxnorm_client import RxNormClient
from ndc_calculator.services.units import canonical_unit
from ndc_calculator.services.upstream import CachedFetcher, get_json

logger = logging.getLogger(__name__)

PAGE_LIMIT = 100
SUGGESTION_PAGE_LIMIT = 50

_NDC_PREFIX_RE = re.compile(r"^\d[\d-]*$")
_NAME_TERM_RE = re.compile(r"[^\w\s-]")


def is_active(expiration: Optional[str], today: date) -> bool:
    """listing_expiration_date is YYYYMMDD; missing or unreadable counts as active."""
    if not expiration:
        return True
    try:
        expires = date(int(expiration[0:4]), int(expiration[4:6]), int(expiration[6:8]))
    except ValueError:
        logger.warning("Unreadable listing expiration date: %s", expiration)
        return True
    return expires >= today


def to_candidates(results: List[Dict[str, Any]], today: date) -> List[PackageCandidate]:
    candidates: List[PackageCandidate] = []
    skipped = 0
    for result in results:
        openfda = result.get("openfda") or {}
        manufacturer = result.get("labeler_name") or (openfda.get("manufacturer_name") or ["Unknown"])[0]
        active = is_active(result.get("listing_expiration_date"), today)

        for pkg in result.get("packaging") or []:
            parsed = parse_package_description(pkg.get("description"))
            if parsed is None or parsed.total_quantity <= 0:
                skipped += 1
                continue
            raw_ndc = pkg.get("package_ndc") or ""
            candidates.append(PackageCandidate(
                identifier=normalize_ndc(raw_ndc) or raw_ndc,
                units_per_package=parsed.total_quantity,
                description=pkg.get("description") or "",
                manufacturer=manufacturer,
                dosage_form=result.get("dosage_form") or "",
                is_active=active,
                package_unit=canonical_unit(parsed.unit),
                generic_name=result.get("generic_name"),
            ))

    if skipped:
        logger.warning("Skipped %d package(s) with unreadable descriptions", skipped)
    return candidates


class FdaClient:
    """Package listings from the openFDA NDC directory."""

    def __init__(
        self,
        session: requests.Session,
        cache: TTLCache,
        coalescer: RequestCoalescer,
        rxnorm: Optional[RxNormClient] = None,
        url: str = FDA_NDC_URL,
        api_key: str = FDA_API_KEY,
        today: Callable[[], date] = date.today,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        self.session = session
        self.rxnorm = rxnorm
        self.url = url
        self.api_key = api_key
        self.today = today
        self.fetcher = CachedFetcher(cache, coalescer, sleep=sleep)

    def _results(self, query: str, limit: int = PAGE_LIMIT) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"search": query, "limit": limit}
        if self.api_key:
            params["api_key"] = self.api_key
        # openFDA answers 404 when nothing matches
        data = get_json(self.session, self.url, service="openfda", params=params, not_found={"results": []})
        if not isinstance(data, dict):
            raise PayloadValidationError("openfda returned an unexpected body")
        return data.get("results") or []

    def _search(self, query: str) -> List[PackageCandidate]:
        return to_candidates(self._results(query), self.today())

    def _cached_search(self, key: str, query: str) -> List[PackageCandidate]:
        rows = self.fetcher.fetch(
            key,
            FDA_PACKAGES_TTL,
            lambda: [c.model_dump() for c in self._search(query)],
            cache_if=lambda value: value is not None,
        )
        return [PackageCandidate.model_validate(row) for row in rows]

    def packages_by_generic_name(self, generic_name: str) -> List[PackageCandidate]:
        name = generic_name.strip().upper().replace('"', "")
        return self._cached_search(fda_generic_packages_key(name), f'generic_name:"{name}"')

    def packages_by_rxcui(self, rxcui: str) -> List[PackageCandidate]:
        packages = self._cached_search(fda_rxcui_packages_key(rxcui), f'openfda.rxcui:"{rxcui.strip()}"')
        if packages or self.rxnorm is None:
            return packages

        props = self.rxnorm.get_properties(rxcui)
        name = (props or {}).get("name")
        if not name:
            logger.warning("No packages and no generic name for RxCUI %s", rxcui)
            return []
        logger.info("openfda.rxcui search empty for %s, trying generic name %s", rxcui, name)
        return self.packages_by_generic_name(name)

    def packages_by_product_ndc(self, ndc: str) -> List[PackageCandidate]:
        variants = product_ndc_variants(ndc)
        if not variants:
            return []
        query = " ".join(f'product_ndc:"{v}"' for v in variants)
        return self._cached_search(fda_product_packages_key(variants[0]), query)

    # ---------------------------
    # type-ahead
    # ---------------------------
    def generic_name_prefixes(self, prefix: str) -> List[str]:
        """
        Generic names listed in the directory that start with `prefix`,
        first seen first. The wildcard search only runs on the first word;
        the full prefix is matched locally.
        """
        term = _NAME_TERM_RE.sub("", prefix or "").strip().upper()
        if len(term) < AUTOCOMPLETE_MIN_CHARS:
            return []

        def load() -> List[str]:
            names: List[str] = []
            for result in self._results(f"generic_name:{term.split()[0]}*", limit=SUGGESTION_PAGE_LIMIT):
                name = (result.get("generic_name") or "").strip()
                if name.upper().startswith(term) and name not in names:
                    names.append(name)
            return names

        return self.fetcher.fetch(fda_generic_prefix_key(term), AUTOCOMPLETE_TTL, load)

    def ndc_suggestions(self, prefix: str) -> List[str]:
        """Package NDCs, as openFDA lists them, that start with the typed digits and dashes."""
        text = (prefix or "").strip()
        if len(text) < NDC_AUTOCOMPLETE_MIN_CHARS or not _NDC_PREFIX_RE.match(text):
            return []

        def load() -> List[str]:
            found = set()
            for result in self._results(f"package_ndc:{text}*", limit=SUGGESTION_PAGE_LIMIT):
                for pkg in result.get("packaging") or []:
                    ndc = pkg.get("package_ndc") or ""
                    if ndc.startswith(text):
                        found.add(ndc)
            return sorted(found)[:AUTOCOMPLETE_LIMIT]

        suggestions = self.fetcher.fetch(fda_ndc_prefix_key(text), AUTOCOMPLETE_TTL, load)
        logger.debug("%d NDC suggestion(s) for %s", len(suggestions), text)
        return suggestions
