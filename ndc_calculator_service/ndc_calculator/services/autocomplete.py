"""
Type-ahead suggestions for the drug and NDC inputs.

Drug names come from RxNorm spelling suggestions first. When those are thin,
generic names from the openFDA directory are added, but only the ones RxNorm
also recognizes, so every suggestion can be calculated.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

import requests

from ndc_calculator.core.settings import (
    AUTOCOMPLETE_FDA_THRESHOLD,
    AUTOCOMPLETE_LIMIT,
    AUTOCOMPLETE_MIN_CHARS,
)
from ndc_calculator.services.errors import PayloadValidationError, UpstreamError
from ndc_calculator.services.fda_client import FdaClient
from ndc_calculator.services.rxnorm_client import RxNormClient

logger = logging.getLogger(__name__)

UPSTREAM_FAILURES = (UpstreamError, PayloadValidationError, requests.RequestException)

# openFDA names checked against RxNorm per query
MAX_VALIDATED_NAMES = 20


class Autocomplete:
    def __init__(
        self,
        rxnorm: RxNormClient,
        fda: FdaClient,
        executor: ThreadPoolExecutor,
        limit: int = AUTOCOMPLETE_LIMIT,
        fda_threshold: int = AUTOCOMPLETE_FDA_THRESHOLD,
    ):
        self.rxnorm = rxnorm
        self.fda = fda
        self.executor = executor
        self.limit = limit
        self.fda_threshold = fda_threshold

    def _is_known(self, name: str) -> bool:
        try:
            return self.rxnorm.search_by_name(name) is not None
        except UPSTREAM_FAILURES as exc:
            logger.debug("Could not validate %s (%s)", name, type(exc).__name__)
            return False

    def drug_names(self, query: str) -> List[str]:
        text = (query or "").strip()
        if len(text) < AUTOCOMPLETE_MIN_CHARS:
            return []

        # casefolded name -> first spelling seen
        found: Dict[str, str] = {}

        try:
            for name in self.rxnorm.autocomplete(text):
                found.setdefault(name.casefold(), name)
        except UPSTREAM_FAILURES as exc:
            logger.debug("RxNorm suggestions failed for %s (%s)", text, type(exc).__name__)

        if len(found) < self.fda_threshold:
            try:
                names = self.fda.generic_name_prefixes(text)[:MAX_VALIDATED_NAMES]
            except UPSTREAM_FAILURES as exc:
                logger.debug("openFDA suggestions failed for %s (%s)", text, type(exc).__name__)
                names = []
            known = list(self.executor.map(self._is_known, names))
            for name, ok in zip(names, known):
                if ok:
                    found.setdefault(name.casefold(), name)
            logger.debug("openFDA offered %d name(s), %d recognized", len(names), sum(known))

        suggestions = sorted(found.values(), key=str.casefold)[: self.limit]
        logger.debug("%d suggestion(s) for %r", len(suggestions), text)
        return suggestions

    def ndc_codes(self, query: str) -> List[str]:
        """Upstream failures propagate; callers decide how to degrade."""
        return self.fda.ndc_suggestions(query)[: self.limit]
