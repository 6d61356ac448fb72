# ndc_calculator/services/llm/instruction_sanitize.py
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ndc_calculator.schemas.models import VALID_UNITS, Concentration, ParsedInstruction
from ndc_calculator.services.units import UNIT_ALIASES

logger = logging.getLogger(__name__)


def _number(v: Any) -> Optional[float]:
    # bool is an int subclass; a model answering `true` is not a dose
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def normalize_unit(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    u = raw.strip()
    if u in VALID_UNITS:
        return u
    return UNIT_ALIASES.get(u.lower())


def _concentration(raw: Any) -> Optional[Concentration]:
    if not isinstance(raw, dict):
        return None
    amount = _number(raw.get("amount"))
    volume = _number(raw.get("volume"))
    if amount is None or volume is None:
        return None
    try:
        return Concentration(
            amount=amount,
            unit=str(raw.get("unit") or "mg"),
            volume=volume,
            volume_unit=str(raw.get("volume_unit") or "mL"),
        )
    except ValidationError:
        return None


def sanitize_instruction(raw: Any) -> Optional[ParsedInstruction]:
    """
    Accept a model answer only if every required field has the right type,
    range and unit. Optional extras that fail are dropped, not fatal.
    """
    if not isinstance(raw, dict):
        return None

    dose = _number(raw.get("dose"))
    frequency = _number(raw.get("frequency"))
    confidence = _number(raw.get("confidence"))
    unit = normalize_unit(raw.get("unit"))
    if dose is None or frequency is None or confidence is None or unit is None:
        logger.debug("Rejected model answer with missing or mistyped fields: %s", sorted(raw))
        return None

    capacity = raw.get("device_capacity")
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
        capacity = None

    try:
        return ParsedInstruction(
            dose=dose,
            frequency=frequency,
            unit=unit,
            confidence=confidence,
            concentration=_concentration(raw.get("concentration")),
            device_capacity=capacity,
        )
    except ValidationError as exc:
        logger.debug("Rejected out-of-range model answer: %s", exc.errors()[0].get("msg"))
        return None


def sanitize_rewrite(raw: Any, original: str) -> Optional[str]:
    if not isinstance(raw, dict):
        return None
    text = raw.get("instruction")
    if not isinstance(text, str):
        return None
    text = " ".join(text.split())
    if not text or text.casefold() == " ".join(original.split()).casefold():
        return None
    return text
