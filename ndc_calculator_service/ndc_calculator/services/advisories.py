import math
from typing import List, Optional

from ndc_calculator.core.settings import OVERFILL_WARNING_PERCENT
from ndc_calculator.schemas.models import Advisory, CandidateSelection, PackageCandidate, ParsedInstruction

UNIT_TO_DOSAGE_FORMS = {
    "tablet": ("TABLET", "PILL"),
    "capsule": ("CAPSULE",),
    "pill": ("PILL", "TABLET"),
    "mL": ("LIQUID", "SOLUTION", "SUSPENSION", "SYRUP", "ELIXIR"),
    "L": ("LIQUID", "SOLUTION", "SUSPENSION"),
    "unit": ("INJECTION", "UNIT", "VIAL"),
    "actuation": ("INHALATION", "AEROSOL", "SPRAY"),
}


def _fmt(value: float) -> str:
    return f"{value:g}"


def inactive_advisory(candidate: PackageCandidate) -> Advisory:
    return Advisory(
        kind="inactive_identifier",
        severity="error",
        message=f"NDC {candidate.identifier} is inactive and should not be dispensed",
        identifier=candidate.identifier,
    )


def _overfill(selection: CandidateSelection, target_quantity: float) -> Optional[Advisory]:
    if selection.overfill <= 0 or target_quantity <= 0:
        return None
    percent = selection.overfill / target_quantity * 100
    if percent <= OVERFILL_WARNING_PERCENT:
        return None
    return Advisory(
        kind="overfill",
        severity="warning",
        message=(
            f"Recommended package results in {percent:.1f}% waste "
            f"({_fmt(selection.overfill)} units excess)"
        ),
        identifier=selection.identifier,
    )


def _underfill(selection: CandidateSelection, target_quantity: float) -> Optional[Advisory]:
    if selection.package_count != 1 or selection.underfill <= 0:
        return None
    required = math.ceil(target_quantity / selection.units_per_package)
    plural = "s" if required > 1 else ""
    return Advisory(
        kind="underfill",
        severity="warning",
        message=f"Recommended package is insufficient. Requires {required} package{plural} to meet quantity",
        identifier=selection.identifier,
    )


def _form_mismatch(
    selection: CandidateSelection,
    parsed: ParsedInstruction,
    candidate: PackageCandidate,
) -> Optional[Advisory]:
    expected = UNIT_TO_DOSAGE_FORMS.get(parsed.unit)
    form = (candidate.dosage_form or "").upper()
    if not expected or not form:
        return None
    if any(f in form for f in expected):
        return None
    return Advisory(
        kind="form_mismatch",
        severity="warning",
        message=f"Instruction specifies {parsed.unit} but NDC is {candidate.dosage_form}. Please verify.",
        identifier=selection.identifier,
    )


def generate_advisories(
    selection: CandidateSelection,
    target_quantity: float,
    parsed: ParsedInstruction,
    candidate: PackageCandidate,
) -> List[Advisory]:
    """
    Independent checks on one selection. target_quantity is in the
    package's unit (CandidateSelection.target_quantity).
    """
    advisories: List[Advisory] = []
    if not candidate.is_active:
        advisories.append(inactive_advisory(candidate))
    for advisory in (
        _overfill(selection, target_quantity),
        _underfill(selection, target_quantity),
        _form_mismatch(selection, parsed, candidate),
    ):
        if advisory is not None:
            advisories.append(advisory)
    return advisories
