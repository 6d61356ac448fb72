"""
Unit aliases and the small whitelist of conversions: mL <-> L and insulin
units <-> mL (via the insulin strength, U-100 by default).
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

UNIT_ALIASES = {
    "tablet": "tablet", "tablets": "tablet", "tab": "tablet", "tabs": "tablet",
    "capsule": "capsule", "capsules": "capsule", "cap": "capsule", "caps": "capsule",
    "pill": "pill", "pills": "pill",
    "ml": "mL", "milliliter": "mL", "milliliters": "mL", "millilitre": "mL", "cc": "mL",
    "l": "L", "liter": "L", "liters": "L", "litre": "L",
    "unit": "unit", "units": "unit", "u": "unit", "iu": "unit",
    "actuation": "actuation", "actuations": "actuation", "puff": "actuation", "puffs": "actuation",
    "spray": "actuation", "sprays": "actuation", "inhalation": "actuation", "inhalations": "actuation",
}

DISCRETE_UNITS = {"tablet", "capsule", "pill", "unit", "actuation"}
CONTINUOUS_UNITS = {"mL", "L"}

_CATEGORIES = {
    "tablet": "solid", "capsule": "solid", "pill": "solid",
    "mL": "liquid", "L": "liquid",
    "unit": "unit",
    "actuation": "actuation",
}


def canonical_unit(raw: Optional[str]) -> Optional[str]:
    """'TABLET, FILM COATED' -> 'tablet', 'ML' -> 'mL'. None when not a known unit."""
    if not raw:
        return None
    head = raw.split(",")[0].strip().lower()
    if head in UNIT_ALIASES:
        return UNIT_ALIASES[head]
    first = head.split(" ")[0] if head else ""
    return UNIT_ALIASES.get(first)


def unit_category(unit: Optional[str]) -> Optional[str]:
    return _CATEGORIES.get(canonical_unit(unit) or "")


def round_half_up(value: float, places: int = 0) -> float:
    q = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def convert_volume(value: float, from_unit: str, to_unit: str) -> Optional[float]:
    src, dst = canonical_unit(from_unit), canonical_unit(to_unit)
    if value < 0 or src not in CONTINUOUS_UNITS or dst not in CONTINUOUS_UNITS:
        return None
    if src == dst:
        return value
    if src == "mL":
        return round_half_up(value / 1000, 2)
    return round_half_up(value * 1000, 2)


def insulin_units_to_ml(units: float, strength: int = 100) -> float:
    if units < 0:
        raise ValueError("Invalid units value")
    if strength <= 0:
        raise ValueError("Invalid insulin strength")
    return round_half_up(units / strength, 2)


def ml_to_insulin_units(volume_ml: float, strength: int = 100) -> float:
    if volume_ml < 0 or strength <= 0:
        raise ValueError("Invalid volume or insulin strength")
    return round_half_up(volume_ml * strength, 2)


def convert_target(
    quantity: float,
    target_unit: str,
    package_unit: Optional[str],
    insulin_strength: int = 100,
) -> Optional[float]:
    """
    Express `quantity` (in target_unit) in the package's unit.
    Unknown package unit -> unchanged. Incompatible units -> None.
    """
    dst = canonical_unit(package_unit)
    src = canonical_unit(target_unit)
    if dst is None or src is None or dst == src:
        return quantity

    if unit_category(src) == unit_category(dst):
        if src in CONTINUOUS_UNITS:
            return convert_volume(quantity, src, dst)
        return quantity  # tablet / capsule / pill count the same way

    if src == "unit" and dst in CONTINUOUS_UNITS:
        ml = insulin_units_to_ml(quantity, insulin_strength)
        return ml if dst == "mL" else convert_volume(ml, "mL", dst)

    return None


def units_compatible(target_unit: str, package_unit: Optional[str]) -> bool:
    return convert_target(1.0, target_unit, package_unit) is not None
