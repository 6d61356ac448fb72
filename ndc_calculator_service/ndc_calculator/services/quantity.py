import logging

from ndc_calculator.core.settings import AS_NEEDED_DOSES_PER_DAY
from ndc_calculator.schemas.models import ParsedInstruction, QuantityBreakdown, QuantityResult
from ndc_calculator.services.units import CONTINUOUS_UNITS, round_half_up

logger = logging.getLogger(__name__)

ONE_YEAR_DAYS = 365


def round_for_unit(value: float, unit: str) -> float:
    """Countable units round to whole numbers, volumes to 2 decimals (half-up)."""
    return round_half_up(value, 2 if unit in CONTINUOUS_UNITS else 0)


def calculate(
    parsed: ParsedInstruction,
    days_supply: int,
    *,
    as_needed_doses_per_day: float = AS_NEEDED_DOSES_PER_DAY,
) -> QuantityResult:
    if days_supply <= 0:
        raise ValueError("days_supply must be greater than 0")

    frequency = parsed.frequency
    assumed = False
    if parsed.as_needed:
        frequency = as_needed_doses_per_day
        assumed = True
        logger.warning("As-needed instruction, assuming %s dose(s) per day", as_needed_doses_per_day)

    total = round_for_unit(parsed.dose * frequency * days_supply, parsed.unit)

    return QuantityResult(
        total=total,
        unit=parsed.unit,
        breakdown=QuantityBreakdown(dose=parsed.dose, frequency=frequency, days_supply=days_supply),
        as_needed_assumed=assumed,
        exceeds_one_year=days_supply > ONE_YEAR_DAYS,
    )
