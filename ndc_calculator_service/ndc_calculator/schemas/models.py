from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Unit = Literal["tablet", "capsule", "pill", "mL", "L", "unit", "actuation"]
VALID_UNITS = ("tablet", "capsule", "pill", "mL", "L", "unit", "actuation")

AdvisoryKind = Literal[
    "inactive_identifier", "overfill", "underfill", "form_mismatch",
    "as_needed_assumption", "large_quantity",
]
Severity = Literal["error", "warning", "info"]
SelectionKind = Literal["single", "multi"]
ParseSource = Literal["cache", "matcher", "fallback", "rewrite"]

SAFETY_NOTE = (
    "Quantities and package suggestions are decision support only. "
    "Always verify against the prescription and the dispensing system."
)


class Concentration(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., gt=0)
    unit: str = "mg"
    volume: float = Field(..., gt=0)
    volume_unit: str = "mL"


class ParsedInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    dose: float = Field(..., gt=0)
    frequency: float = Field(..., ge=0, description="Doses per day. 0 means as needed.")
    unit: Unit
    confidence: float = Field(..., ge=0, le=1)

    concentration: Optional[Concentration] = None
    device_capacity: Optional[int] = Field(default=None, gt=0)
    insulin_strength: Optional[int] = Field(default=None, gt=0)

    @property
    def as_needed(self) -> bool:
        return self.frequency == 0


class QuantityBreakdown(BaseModel):
    dose: float
    frequency: float  # effective doses per day (as-needed already replaced)
    days_supply: int


class QuantityResult(BaseModel):
    total: float
    unit: str
    breakdown: QuantityBreakdown
    as_needed_assumed: bool = False
    exceeds_one_year: bool = False


class PackageCandidate(BaseModel):
    identifier: str
    units_per_package: float = Field(..., gt=0)
    description: str = ""
    manufacturer: str = "Unknown"
    dosage_form: str = ""
    is_active: bool = True

    # unit the package quantity is expressed in (from the description), if known
    package_unit: Optional[str] = None
    generic_name: Optional[str] = None


class CandidateSelection(BaseModel):
    identifier: str
    kind: SelectionKind
    units_per_package: float
    package_count: int = Field(..., ge=1)
    total_units: float
    overfill: float = Field(..., ge=0)
    underfill: float = Field(..., ge=0)
    match_score: float

    # target expressed in the package's unit, used for overfill/underfill
    target_quantity: float
    description: str = ""
    manufacturer: str = "Unknown"


class Advisory(BaseModel):
    kind: AdvisoryKind
    severity: Severity
    message: str
    identifier: Optional[str] = None


class DrugInfo(BaseModel):
    name: str
    rxcui: Optional[str] = None
    dosage_form: Optional[str] = None


class ResolveResult(BaseModel):
    drug: DrugInfo
    parsed: ParsedInstruction
    quantity: QuantityResult
    ranked_selections: List[CandidateSelection]
    advisories: List[Advisory]
    inactive_candidates: List[PackageCandidate]
    safety_note: str = SAFETY_NOTE


# ---------------------------
# HTTP payloads
# ---------------------------
class CalculateRequest(BaseModel):
    drug_input: str
    sig: str
    days_supply: int


class ParseSigRequest(BaseModel):
    sig: str


class ApiError(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CalculateResponse(BaseModel):
    success: bool
    data: Optional[ResolveResult] = None
    error: Optional[ApiError] = None


class ParseSigResponse(BaseModel):
    success: bool
    data: Optional[ParsedInstruction] = None
    error: Optional[ApiError] = None


class AutocompleteResponse(BaseModel):
    suggestions: List[str] = Field(default_factory=list)
