"""
Pattern tables for the deterministic instruction matcher.

Patterns run against normalized text (see sig_matcher.normalize_instruction),
so number words are already digits and punctuation is gone.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple, Union

NUMBER_WORDS = {
    "one": "1", "two": "2", "three": "3", "four": "4", "five": "5",
    "six": "6", "seven": "7", "eight": "8", "nine": "9", "ten": "10",
    "half": "0.5",
}

# base confidence per priority; penalties are applied on top
BASE_CONFIDENCE = {10: 0.95, 9: 0.93, 8: 0.9, 7: 0.88, 6: 0.86, 5: 0.85, 4: 0.85}

UNIT_DEFAULTED_PENALTY = 0.10
FREQUENCY_MISSING_PENALTY = 0.15

# strengths, not countable doses
MASS_UNITS = {"mg", "mcg", "g", "gram", "grams", "milligram", "milligrams", "microgram", "micrograms"}

_DOSE = r"(?<![\w.\-/])(\d+(?:\.\d+)?(?:\s*(?:-|to)\s*\d+(?:\.\d+)?)?)"
_VERB = r"(?:take|inject|inhale|give|use|instill|apply)"
_ROUTE = r"(?:by\s+mouth|orally|po|subcutaneously|subq|sc|by\s+inhalation|sublingually)"
_FOOD = r"(?:\s+(?:with|after|before)\s+(?:food|meals?)|$)"
_FIXED_DAILY = r"(once|twice|\d+\s+times)\s+(?:a\s+|per\s+)?(?:day|daily)"
_ABBREV = r"(qd|bid|tid|qid|qhs|qam|qpm|qod|q\d+h)\b"


@dataclass(frozen=True)
class SigPattern:
    name: str
    priority: int
    regex: Pattern
    dose_group: Optional[int] = 1
    unit_group: Optional[int] = 2
    frequency_group: Optional[int] = None
    # text: group is free text, hours: group is an hour interval,
    # count: group is a doses-per-day count, slots: group is "1-0-1" notation
    frequency_kind: str = "text"
    fixed_frequency: Optional[float] = None

    @property
    def base_confidence(self) -> float:
        return BASE_CONFIDENCE.get(self.priority, 0.75)


def _p(pattern: str) -> Pattern:
    return re.compile(pattern)


SIG_PATTERNS: List[SigPattern] = sorted(
    [
        SigPattern(
            "verb_unit_route_frequency", 10,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+" + _ROUTE + r"\s+(.+?)" + _FOOD),
            frequency_group=3,
        ),
        SigPattern(
            "verb_unit_every_hours", 9,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+every\s+(\d+(?:\.\d+)?)\s+hours?"),
            frequency_group=3, frequency_kind="hours",
        ),
        SigPattern(
            "verb_unit_morning_and_evening", 9,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+in\s+the\s+morning\s+and\s+"
               r"(?:\d+(?:\.\d+)?\s+\w+\s+)?(?:in\s+the\s+)?evening"),
            fixed_frequency=2,
        ),
        SigPattern(
            "unit_times_daily", 8,
            _p(_DOSE + r"\s+(\w+)\s+(\d+)\s+times\s+(?:a\s+|per\s+)?(?:day|daily)"),
            frequency_group=3, frequency_kind="count",
        ),
        SigPattern(
            "verb_unit_fixed_daily", 8,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+" + _FIXED_DAILY),
            frequency_group=3,
        ),
        SigPattern(
            "verb_unit_abbreviation", 8,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+" + _ABBREV),
            frequency_group=3,
        ),
        SigPattern(
            "verb_unit_morning_or_evening", 7,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+(?:every|each|in\s+the)\s+(?:morning|evening|night)"),
            fixed_frequency=1,
        ),
        SigPattern(
            "verb_unit_at_bedtime", 7,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+at\s+bedtime"),
            fixed_frequency=1,
        ),
        SigPattern(
            "verb_unit_interval_days", 7,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+)\s+(every\s+other\s+day|once\s+(?:a\s+|per\s+)?week|weekly)"),
            frequency_group=3,
        ),
        SigPattern(
            "unit_route_frequency", 6,
            _p(_DOSE + r"\s+(\w+)\s+" + _ROUTE + r"\s+(.+?)" + _FOOD),
            frequency_group=3,
        ),
        SigPattern(
            "unit_every_hours", 6,
            _p(_DOSE + r"\s+(\w+)\s+every\s+(\d+(?:\.\d+)?)\s+hours?"),
            frequency_group=3, frequency_kind="hours",
        ),
        SigPattern(
            "verb_unit_prn", 6,
            _p(_VERB + r"\s+" + _DOSE + r"\s+(\w+).*?(?:as\s+needed|prn|as\s+directed)"),
            fixed_frequency=0,
        ),
        SigPattern(
            "slot_notation", 6,
            _p(r"(?:^|\s)(\d(?:-\d){2,3})(?:\s|$)"),
            dose_group=None, unit_group=None, frequency_group=1, frequency_kind="slots",
        ),
        SigPattern(
            "unit_fixed_daily", 5,
            _p(_DOSE + r"\s+(\w+)\s+" + _FIXED_DAILY),
            frequency_group=3,
        ),
        SigPattern(
            "unit_abbreviation", 5,
            _p(_DOSE + r"\s+(\w+)\s+" + _ABBREV),
            frequency_group=3,
        ),
        SigPattern(
            "unit_daily", 4,
            _p(_DOSE + r"\s+(\w+)\s+daily"),
            fixed_frequency=1,
        ),
    ],
    key=lambda p: p.priority,
    reverse=True,
)

FrequencyValue = Union[float, Callable[[re.Match], Optional[float]]]


def _per_day(count: str) -> Optional[float]:
    n = float(count)
    return n if n > 0 else None


def _every(total: float) -> Callable[[re.Match], Optional[float]]:
    def compute(m: re.Match) -> Optional[float]:
        interval = float(m.group(1))
        return total / interval if interval > 0 else None
    return compute


# most specific first; as-needed comes last so "every 6 hours as needed" keeps its interval
FREQUENCY_RULES: List[Tuple[Pattern, FrequencyValue]] = [
    (_p(r"\bevery\s+other\s+day\b|\bqod\b"), 0.5),
    (_p(r"\bonce\s+(?:a\s+|per\s+)?week\b|\bweekly\b"), 1 / 7),
    (_p(r"\b(\d+)\s+times\s+(?:a\s+|per\s+)?(?:day|daily)\b"), lambda m: _per_day(m.group(1))),
    (_p(r"\b(\d+)\s*x\s+(?:a\s+|per\s+)?(?:day|daily)\b"), lambda m: _per_day(m.group(1))),
    (_p(r"\bqid\b"), 4),
    (_p(r"\btid\b"), 3),
    (_p(r"\btwice\b|\bbid\b"), 2),
    (_p(r"\bevery\s+(\d+(?:\.\d+)?)\s+hours?\b"), _every(24)),
    (_p(r"\bq(\d+)h\b"), _every(24)),
    (_p(r"\bevery\s+(\d+(?:\.\d+)?)\s+minutes?\b"), _every(1440)),
    (_p(r"\bmorning\s+and\s+(?:in\s+the\s+)?(?:evening|night)\b"), 2),
    (_p(r"\bonce\b|\bqd\b|\bdaily\b|\bevery\s+day\b|\bqam\b|\bqpm\b|\bqhs\b|\bbedtime\b"
        r"|\b(?:every|each|in\s+the)\s+(?:morning|evening|night)\b"), 1),
    (_p(r"\bas\s+needed\b|\bprn\b|\bas\s+directed\b"), 0),
]

CONCENTRATION_RE = _p(r"(\d+(?:\.\d+)?)\s*mg\s*(?:/|per)\s*(\d+(?:\.\d+)?)?\s*ml\b")
DEVICE_CAPACITY_RE = _p(
    r"(\d+)\s+(?:actuations?|puffs?|sprays?|inhalations?)\s+per\s+(?:canister|inhaler|device|bottle|pen)"
)
INSULIN_STRENGTH_RE = _p(r"\bu-?(\d+)\b")
