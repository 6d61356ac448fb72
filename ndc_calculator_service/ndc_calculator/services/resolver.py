"""
Resolves (drug, instruction text, days' supply) into a quantity, ranked
package selections and advisories.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

import requests

from ndc_calculator.core.settings import (
    AS_NEEDED_DOSES_PER_DAY,
    DEFAULT_INSULIN_STRENGTH,
    MAX_DAYS_SUPPLY,
    MAX_PACKAGES,
    MAX_RESULTS,
)
from ndc_calculator.schemas.models import (
    Advisory,
    DrugInfo,
    PackageCandidate,
    ResolveResult,
)
from ndc_calculator.services.advisories import generate_advisories, inactive_advisory
from ndc_calculator.services.errors import (
    CalculationError,
    DrugNotFoundError,
    InputValidationError,
    InstructionParseError,
    NoCandidatesError,
    PayloadValidationError,
    UpstreamError,
    UpstreamRejectedError,
    UpstreamUnavailableError,
)
from ndc_calculator.services.fda_client import FdaClient
from ndc_calculator.services.instruction_parser import InstructionParser
from ndc_calculator.services.ndc import detect_input_type, is_product_ndc, normalize_ndc
from ndc_calculator.services.quantity import calculate
from ndc_calculator.services.ranking import rank_candidates
from ndc_calculator.services.retry import should_retry
from ndc_calculator.services.rxnorm_client import RxNormClient

logger = logging.getLogger(__name__)


@dataclass
class CatalogMatch:
    drug: DrugInfo
    candidates: List[PackageCandidate]
    preferred_identifier: Optional[str] = None


def validate_request(drug_identifier, instruction_text, days_supply, max_days: int = MAX_DAYS_SUPPLY) -> None:
    if not isinstance(drug_identifier, str) or not drug_identifier.strip():
        raise InputValidationError("Drug name or NDC is required.", {"field": "drug_input"})
    if not isinstance(instruction_text, str) or not instruction_text.strip():
        raise InputValidationError("Prescription instructions are required.", {"field": "sig"})
    if isinstance(days_supply, bool) or not isinstance(days_supply, int):
        raise InputValidationError("Days' supply must be a whole number.", {"field": "days_supply"})
    if not 1 <= days_supply <= max_days:
        raise InputValidationError(
            f"Days' supply must be between 1 and {max_days}.",
            {"field": "days_supply", "value": days_supply},
        )


def classify_upstream_failure(exc: Exception):
    """Transient failures read as 'try again'; a 4xx other than 429 is reported as a rejection."""
    service = getattr(exc, "service", None)
    details = {"service": service} if service else {}
    if isinstance(exc, UpstreamError) and not should_retry(exc) and exc.status_code is not None:
        return UpstreamRejectedError(details={**details, "status": exc.status_code})
    return UpstreamUnavailableError(details=details)


class Resolver:
    def __init__(
        self,
        parser: InstructionParser,
        rxnorm: RxNormClient,
        fda: FdaClient,
        executor: ThreadPoolExecutor,
        *,
        as_needed_doses_per_day: float = AS_NEEDED_DOSES_PER_DAY,
        max_days_supply: int = MAX_DAYS_SUPPLY,
        max_results: int = MAX_RESULTS,
        max_packages: int = MAX_PACKAGES,
    ):
        self.parser = parser
        self.rxnorm = rxnorm
        self.fda = fda
        self.executor = executor
        self.as_needed_doses_per_day = as_needed_doses_per_day
        self.max_days_supply = max_days_supply
        self.max_results = max_results
        self.max_packages = max_packages

    # ---------------------------
    # catalog lookup
    # ---------------------------
    def _lookup_drug(self, name: str) -> CatalogMatch:
        rxcui = self.rxnorm.search_by_name(name)
        if not rxcui:
            suggestions = self.rxnorm.spelling_suggestions(name)
            raise DrugNotFoundError(details={"drug_input": name, "suggestions": suggestions})

        candidates = self.fda.packages_by_rxcui(rxcui)
        form = candidates[0].dosage_form if candidates else None
        return CatalogMatch(DrugInfo(name=name, rxcui=rxcui, dosage_form=form), candidates)

    def _lookup_ndc(self, ndc: str) -> CatalogMatch:
        normalized = normalize_ndc(ndc)
        if normalized is None and not is_product_ndc(ndc):
            raise InputValidationError("That does not look like a valid NDC.", {"field": "drug_input"})

        candidates = self.fda.packages_by_product_ndc(normalized or ndc)
        if not candidates:
            raise DrugNotFoundError(details={"drug_input": ndc, "suggestions": []})

        first = candidates[0]
        drug = DrugInfo(name=first.generic_name or ndc, dosage_form=first.dosage_form or None)
        return CatalogMatch(drug, candidates, preferred_identifier=normalized)

    def lookup(self, drug_identifier: str) -> CatalogMatch:
        value = drug_identifier.strip()
        kind = detect_input_type(value)
        if kind == "unknown":
            raise InputValidationError("Enter a drug name or an NDC.", {"field": "drug_input"})

        try:
            return self._lookup_ndc(value) if kind == "ndc" else self._lookup_drug(value)
        except (UpstreamError, PayloadValidationError, requests.RequestException) as exc:
            logger.error("Catalog lookup failed for %s (%s)", value, type(exc).__name__)
            raise classify_upstream_failure(exc) from exc

    # ---------------------------
    # full resolution
    # ---------------------------
    def resolve(self, drug_identifier: str, instruction_text: str, days_supply: int) -> ResolveResult:
        validate_request(drug_identifier, instruction_text, days_supply, self.max_days_supply)

        parse_future = self.executor.submit(self.parser.parse, instruction_text)
        lookup_future = self.executor.submit(self.lookup, drug_identifier)
        parsed = parse_future.result()
        match = lookup_future.result()

        if parsed is None:
            raise InstructionParseError(details={"sig": instruction_text})

        quantity = calculate(parsed, days_supply, as_needed_doses_per_day=self.as_needed_doses_per_day)
        if quantity.total <= 0:
            raise CalculationError(details={"sig": instruction_text, "days_supply": days_supply})

        if not match.candidates:
            raise NoCandidatesError(details={"drug": match.drug.name, "rxcui": match.drug.rxcui, "inactive": []})

        outcome = rank_candidates(
            match.candidates,
            quantity.total,
            quantity.unit,
            preferred_identifier=match.preferred_identifier,
            max_results=self.max_results,
            max_packages=self.max_packages,
            insulin_strength=parsed.insulin_strength or DEFAULT_INSULIN_STRENGTH,
        )
        if not outcome.selections:
            raise NoCandidatesError(details={
                "drug": match.drug.name,
                "rxcui": match.drug.rxcui,
                "inactive": [c.identifier for c in outcome.inactive],
            })

        advisories: List[Advisory] = []
        top = outcome.selections[0]
        source = next(c for c in match.candidates if c.identifier == top.identifier and c.is_active)
        advisories.extend(generate_advisories(top, top.target_quantity, parsed, source))
        advisories.extend(inactive_advisory(c) for c in outcome.inactive)

        if quantity.as_needed_assumed:
            advisories.append(Advisory(
                kind="as_needed_assumption",
                severity="info",
                message=(
                    f"As-needed instruction: quantity assumes {quantity.breakdown.frequency:g} "
                    "dose(s) per day. Adjust if the prescriber specified a maximum."
                ),
            ))
        if quantity.exceeds_one_year:
            advisories.append(Advisory(
                kind="large_quantity",
                severity="info",
                message=f"Days' supply of {days_supply} exceeds one year. Please verify.",
            ))

        logger.info(
            "Resolved %s: %s %s, %d selection(s), %d advisory(ies)",
            match.drug.name, quantity.total, quantity.unit, len(outcome.selections), len(advisories),
        )
        return ResolveResult(
            drug=match.drug,
            parsed=parsed,
            quantity=quantity,
            ranked_selections=outcome.selections,
            advisories=advisories,
            inactive_candidates=outcome.inactive,
        )
