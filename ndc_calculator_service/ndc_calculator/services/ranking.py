"""
Candidate ranking: single- and multi-package selections scored by how
closely they meet the target quantity.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ndc_calculator.core.settings import (
    DEFAULT_INSULIN_STRENGTH,
    MAX_PACKAGES,
    MAX_RESULTS,
    PREFERRED_BOOST,
)
from ndc_calculator.schemas.models import CandidateSelection, PackageCandidate
from ndc_calculator.services.ndc import same_ndc
from ndc_calculator.services.units import convert_target

logger = logging.getLogger(__name__)

NEAR_MATCH_RATIO = 0.05


@dataclass
class RankingOutcome:
    selections: List[CandidateSelection] = field(default_factory=list)
    inactive: List[PackageCandidate] = field(default_factory=list)


def score_selection(total_units: float, target: float) -> float:
    """
    100 exact, 90-99 within 5%, 80-89 overfill, 70-79 underfill.
    Closer is always higher within a band.
    """
    if math.isclose(total_units, target, rel_tol=1e-9, abs_tol=1e-9):
        return 100.0

    diff = abs(total_units - target) / target
    if diff <= NEAR_MATCH_RATIO:
        return 90.0 + round(9 * (1 - diff / NEAR_MATCH_RATIO))
    if total_units > target:
        return 89.0 - round(min(diff, 1.0) * 9)
    return 79.0 - round(min(diff, 1.0) * 9)


def _selection(
    candidate: PackageCandidate,
    target: float,
    package_count: int,
    preferred_identifier: Optional[str],
) -> CandidateSelection:
    total = candidate.units_per_package * package_count
    score = score_selection(total, target)
    if preferred_identifier and same_ndc(candidate.identifier, preferred_identifier):
        score += PREFERRED_BOOST

    return CandidateSelection(
        identifier=candidate.identifier,
        kind="single" if package_count == 1 else "multi",
        units_per_package=candidate.units_per_package,
        package_count=package_count,
        total_units=total,
        overfill=max(0.0, total - target),
        underfill=max(0.0, target - total),
        match_score=score,
        target_quantity=target,
        description=candidate.description,
        manufacturer=candidate.manufacturer,
    )


def rank_candidates(
    candidates: Sequence[PackageCandidate],
    target_quantity: float,
    target_unit: str = "tablet",
    *,
    preferred_identifier: Optional[str] = None,
    max_results: int = MAX_RESULTS,
    max_packages: int = MAX_PACKAGES,
    insulin_strength: int = DEFAULT_INSULIN_STRENGTH,
) -> RankingOutcome:
    if target_quantity <= 0:
        raise ValueError("target_quantity must be greater than 0")

    outcome = RankingOutcome()
    pool: List[CandidateSelection] = []

    for candidate in candidates:
        if not candidate.is_active:
            outcome.inactive.append(candidate)
            continue

        target = convert_target(target_quantity, target_unit, candidate.package_unit, insulin_strength)
        if target is None or target <= 0:
            logger.debug("Skipping %s: %s packages cannot fill %s", candidate.identifier, candidate.package_unit, target_unit)
            continue

        pool.append(_selection(candidate, target, 1, preferred_identifier))

        count = math.ceil(target / candidate.units_per_package)
        if 1 < count <= max_packages:
            pool.append(_selection(candidate, target, count, preferred_identifier))

    # ties go to fewer packages, then candidate order (sorted() is stable)
    pool.sort(key=lambda s: (-s.match_score, s.package_count))
    outcome.selections = pool[:max_results]
    logger.debug(
        "Ranked %d selections from %d candidates (%d inactive)",
        len(pool), len(candidates), len(outcome.inactive),
    )
    return outcome
