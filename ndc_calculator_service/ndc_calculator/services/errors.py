from typing import Any, Dict, Optional

USER_MESSAGES = {
    "INVALID_INPUT": "Please check your input and try again.",
    "DRUG_NOT_FOUND": "Drug not found. Please check the spelling or try a different name.",
    "NO_NDCS_FOUND": "No active NDCs found for this drug. The drug may be discontinued or unavailable.",
    "SIG_PARSE_FAILED": "Could not determine dosage instructions. Please use a format like \"Take 1 tablet twice daily\".",
    "API_ERROR": "Service temporarily unavailable. Please try again in a moment.",
    "UPSTREAM_REJECTED": "A drug data service rejected the request. Please check your input.",
    "CALCULATION_ERROR": "An error occurred during calculation. Please check your inputs and try again.",
}


def user_message(code: str) -> str:
    return USER_MESSAGES.get(code, "An unexpected error occurred. Please try again.")


# ---------------------------
# Upstream (collaborator) errors
# ---------------------------
class UpstreamError(RuntimeError):
    """HTTP-level failure from an external service. `status_code` drives retry classification."""

    def __init__(self, message: str, status_code: Optional[int] = None, service: str = "upstream"):
        super().__init__(message)
        self.status_code = status_code
        self.service = service


class PayloadValidationError(ValueError):
    """Upstream answered, but the body is not what we asked for. Never retried."""


# ---------------------------
# Resolution failures (one per category)
# ---------------------------
class ResolutionError(Exception):
    code = "API_ERROR"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message or user_message(self.code))
        self.message = message or user_message(self.code)
        self.details = details or {}


class InputValidationError(ResolutionError):
    code = "INVALID_INPUT"


class DrugNotFoundError(ResolutionError):
    code = "DRUG_NOT_FOUND"


class InstructionParseError(ResolutionError):
    code = "SIG_PARSE_FAILED"


class NoCandidatesError(ResolutionError):
    code = "NO_NDCS_FOUND"


class UpstreamUnavailableError(ResolutionError):
    code = "API_ERROR"


class UpstreamRejectedError(ResolutionError):
    code = "UPSTREAM_REJECTED"


class CalculationError(ResolutionError):
    code = "CALCULATION_ERROR"
