"""
Reads unit counts out of openFDA packaging descriptions, e.g.

    "100 TABLET, FILM COATED in 1 BOTTLE (0071-0155-23)"
    "3 BLISTER PACK in 1 CARTON / 10 TABLET in 1 BLISTER PACK"
    "1 INHALER in 1 CARTON / 200 ACTUATION in 1 INHALER"
"""
import re
from dataclasses import dataclass
from typing import Optional

_PAREN_RE = re.compile(r"\s*\([^)]*\)")
_MULTI_RE = re.compile(r"^(\d+)\s*x\s*(\d+(?:\.\d+)?)\s+([A-Za-z][A-Za-z ,]*?)(?:\s+in\s+\d+\s+.*)?$", re.I)
_SIMPLE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s+([A-Za-z][A-Za-z ,]*?)(?:\s+in\s+\d+\s+.*)?$", re.I)
_OUTER_COUNT_RE = re.compile(r"(\d+)\s+(?:BLISTER PACK|CARTON|VIAL|BOTTLE|POUCH|KIT|PACKAGE|SYRINGE|CARTRIDGE|PEN|AMPULE)\b", re.I)


@dataclass(frozen=True)
class ParsedPackage:
    quantity: float
    unit: str
    package_count: int = 1

    @property
    def total_quantity(self) -> float:
        return self.quantity * self.package_count


def _parse_simple(part: str) -> Optional[ParsedPackage]:
    cleaned = _PAREN_RE.sub("", part).strip()
    if not cleaned:
        return None

    m = _MULTI_RE.match(cleaned)
    if m:
        count, qty = int(m.group(1)), float(m.group(2))
        if count > 0 and qty > 0:
            return ParsedPackage(quantity=qty, unit=m.group(3).strip().upper(), package_count=count)
        return None

    m = _SIMPLE_RE.match(cleaned)
    if m:
        qty = float(m.group(1))
        if qty > 0:
            return ParsedPackage(quantity=qty, unit=m.group(2).strip(" ,").upper())
    return None


def parse_package_description(description: Optional[str]) -> Optional[ParsedPackage]:
    if not description or not isinstance(description, str) or not description.strip():
        return None

    parts = [p.strip() for p in description.split(" / ") if p.strip()]
    if len(parts) >= 2:
        # innermost level carries the dispensable unit
        inner = _parse_simple(parts[-1])
        if inner is not None:
            outer = _OUTER_COUNT_RE.search(_PAREN_RE.sub("", parts[0]))
            count = int(outer.group(1)) if outer else 1
            if count > 1 and inner.package_count == 1:
                return ParsedPackage(quantity=inner.quantity, unit=inner.unit, package_count=count)
            return inner

    return _parse_simple(parts[0] if parts else description)
