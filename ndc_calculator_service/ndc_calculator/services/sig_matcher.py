import logging
import re
from typing import Optional, Tuple

from pydantic import ValidationError

from ndc_calculator.core.settings import MATCHER_MIN_CONFIDENCE
from ndc_calculator.schemas.models import Concentration, ParsedInstruction
from ndc_calculator.services.sig_patterns import (
    CONCENTRATION_RE,
    DEVICE_CAPACITY_RE,
    FREQUENCY_MISSING_PENALTY,
    FREQUENCY_RULES,
    INSULIN_STRENGTH_RE,
    MASS_UNITS,
    NUMBER_WORDS,
    SIG_PATTERNS,
    UNIT_DEFAULTED_PENALTY,
    SigPattern,
)
from ndc_calculator.services.units import UNIT_ALIASES

logger = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[,;:!?()\"]")
_STRAY_PERIOD_RE = re.compile(r"(?<!\d)\.|\.(?!\d)")
_GLUED_NUMBER_RE = re.compile(r"(?<![a-z\d.])(\d+(?:\.\d+)?)([a-z]+)")
_NUMBER_WORD_RE = re.compile(r"\b(" + "|".join(NUMBER_WORDS) + r")\b")
_RANGE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:-|to)\s*(\d+(?:\.\d+)?)")


def normalize_instruction(text: str) -> str:
    """
    Lowercase, drop non-semantic punctuation, split "5ml" into "5 ml" and spell
    number words as digits. Decimal points survive ("0.5").
    """
    if not text or not isinstance(text, str):
        return ""
    s = text.lower()
    s = _PUNCT_RE.sub(" ", s)
    s = _STRAY_PERIOD_RE.sub("", s)
    s = _GLUED_NUMBER_RE.sub(r"\1 \2", s)
    s = _NUMBER_WORD_RE.sub(lambda m: NUMBER_WORDS[m.group(1)], s)
    return re.sub(r"\s+", " ", s).strip()


def parse_dose(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    raw = raw.strip()
    rng = _RANGE_RE.fullmatch(raw)
    if rng:
        return (float(rng.group(1)) + float(rng.group(2))) / 2
    try:
        dose = float(raw)
    except ValueError:
        return None
    return dose if dose > 0 else None


def resolve_unit(token: Optional[str], text: str) -> Tuple[Optional[str], bool]:
    """
    Returns (unit, defaulted). unit is None when the captured token is a mass
    strength, which this matcher does not turn into a count.
    """
    if token:
        if token in MASS_UNITS:
            return None, False
        if token in UNIT_ALIASES:
            return UNIT_ALIASES[token], False

    # single letters ("l", "u") are too ambiguous for a free scan
    for word in text.split(" "):
        if len(word) > 1 and word in UNIT_ALIASES:
            return UNIT_ALIASES[word], False
    return "tablet", True


def frequency_from_text(text: str) -> Optional[float]:
    for regex, value in FREQUENCY_RULES:
        m = regex.search(text)
        if not m:
            continue
        freq = value(m) if callable(value) else float(value)
        if freq is not None:
            return freq
    return None


def _slot_frequency(notation: str) -> Optional[float]:
    total = sum(int(part) for part in notation.split("-"))
    return float(total) if total > 0 else None


def _extract_frequency(pattern: SigPattern, m: re.Match, text: str) -> Optional[float]:
    if pattern.fixed_frequency is not None:
        return pattern.fixed_frequency

    group = m.group(pattern.frequency_group) if pattern.frequency_group else None
    if group:
        if pattern.frequency_kind == "hours":
            hours = float(group)
            return 24 / hours if hours > 0 else None
        if pattern.frequency_kind == "count":
            return float(group) if float(group) > 0 else None
        if pattern.frequency_kind == "slots":
            return _slot_frequency(group)
        freq = frequency_from_text(group)
        if freq is not None:
            return freq

    return frequency_from_text(text)


def extract_concentration(text: str) -> Optional[Concentration]:
    m = CONCENTRATION_RE.search(text)
    if not m:
        return None
    amount = float(m.group(1))
    volume = float(m.group(2)) if m.group(2) else 1.0
    if amount <= 0 or volume <= 0:
        return None
    return Concentration(amount=amount, unit="mg", volume=volume, volume_unit="mL")


def extract_device_capacity(text: str) -> Optional[int]:
    m = DEVICE_CAPACITY_RE.search(text)
    if not m:
        return None
    capacity = int(m.group(1))
    return capacity if capacity > 0 else None


def extract_insulin_strength(text: str) -> Optional[int]:
    m = INSULIN_STRENGTH_RE.search(text)
    if not m:
        return None
    strength = int(m.group(1))
    return strength if strength > 0 else None


def _try_pattern(pattern: SigPattern, text: str) -> Optional[ParsedInstruction]:
    m = pattern.regex.search(text)
    if not m:
        return None

    dose = parse_dose(m.group(pattern.dose_group)) if pattern.dose_group else 1.0
    token = m.group(pattern.unit_group) if pattern.unit_group else None
    unit, defaulted = resolve_unit(token, text)
    frequency = _extract_frequency(pattern, m, text)

    confidence = pattern.base_confidence
    if defaulted:
        confidence -= UNIT_DEFAULTED_PENALTY
    if frequency is None:
        confidence -= FREQUENCY_MISSING_PENALTY
    confidence = max(0.0, min(1.0, round(confidence, 4)))

    if confidence < MATCHER_MIN_CONFIDENCE:
        logger.debug("Pattern %s matched with low confidence %.2f", pattern.name, confidence)
        return None
    if dose is None or unit is None or frequency is None:
        logger.debug("Pattern %s matched but fields are incomplete", pattern.name)
        return None

    try:
        return ParsedInstruction(
            dose=dose,
            frequency=frequency,
            unit=unit,
            confidence=confidence,
            concentration=extract_concentration(text),
            device_capacity=extract_device_capacity(text),
            insulin_strength=extract_insulin_strength(text) if unit == "unit" else None,
        )
    except ValidationError:
        logger.debug("Pattern %s produced an invalid instruction", pattern.name)
        return None


def match_instruction(text: str) -> Optional[ParsedInstruction]:
    """
    Walk the pattern table from most to least specific and return the first
    acceptable extraction, or None.
    """
    normalized = normalize_instruction(text)
    if not normalized:
        return None

    for pattern in SIG_PATTERNS:
        parsed = _try_pattern(pattern, normalized)
        if parsed is not None:
            logger.debug("Matched %r with %s (confidence %.2f)", normalized, pattern.name, parsed.confidence)
            return parsed

    logger.debug("No pattern matched %r", normalized)
    return None
