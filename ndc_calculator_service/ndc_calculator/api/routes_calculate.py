# ndc_calculator/api/routes_calculate.py
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ndc_calculator.core.state import SharedState
from ndc_calculator.schemas.models import (
    ApiError,
    AutocompleteResponse,
    CalculateRequest,
    CalculateResponse,
    ParseSigRequest,
    ParseSigResponse,
)
from ndc_calculator.services.autocomplete import UPSTREAM_FAILURES
from ndc_calculator.services.errors import ResolutionError, user_message
from ndc_calculator.services.security import require_internal_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["calculate"])

STATUS_BY_CODE = {
    "INVALID_INPUT": 400,
    "DRUG_NOT_FOUND": 404,
    "NO_NDCS_FOUND": 404,
    "SIG_PARSE_FAILED": 422,
    "CALCULATION_ERROR": 422,
    "UPSTREAM_REJECTED": 502,
    "API_ERROR": 503,
}


def get_shared_state(request: Request) -> SharedState:
    return request.app.state.shared


def error_response(code: str, message: str | None = None, details: dict | None = None) -> JSONResponse:
    body = CalculateResponse(
        success=False,
        error=ApiError(code=code, message=message or user_message(code), details=details or {}),
    )
    return JSONResponse(status_code=STATUS_BY_CODE.get(code, 500), content=body.model_dump(mode="json"))


@router.post("/calculate", response_model=CalculateResponse)
def calculate(req: CalculateRequest, shared: SharedState = Depends(get_shared_state)):
    try:
        result = shared.resolver.resolve(req.drug_input, req.sig, req.days_supply)
    except ResolutionError as e:
        logger.info("Calculation failed with %s", e.code)
        return error_response(e.code, e.message, e.details)
    return CalculateResponse(success=True, data=result)


@router.post("/parse-sig", response_model=ParseSigResponse)
def parse_sig(req: ParseSigRequest, shared: SharedState = Depends(get_shared_state)):
    parsed = shared.parser.parse(req.sig)
    if parsed is None:
        return error_response("SIG_PARSE_FAILED", details={"sig": req.sig})
    return ParseSigResponse(success=True, data=parsed)


@router.post("/cache/clear", dependencies=[Depends(require_internal_key)])
def clear_cache(shared: SharedState = Depends(get_shared_state)):
    cleared = len(shared.cache)
    shared.cache.clear()
    return {"ok": True, "cleared": cleared}


# type-ahead never fails the page: errors degrade to no suggestions
@router.get("/autocomplete", response_model=AutocompleteResponse)
def autocomplete(q: str = "", shared: SharedState = Depends(get_shared_state)):
    try:
        return AutocompleteResponse(suggestions=shared.autocomplete.drug_names(q))
    except UPSTREAM_FAILURES as e:
        logger.error("Drug autocomplete failed (%s)", type(e).__name__)
        return AutocompleteResponse()


@router.get("/autocomplete/ndc", response_model=AutocompleteResponse)
def autocomplete_ndc(q: str = "", shared: SharedState = Depends(get_shared_state)):
    try:
        return AutocompleteResponse(suggestions=shared.autocomplete.ndc_codes(q))
    except UPSTREAM_FAILURES as e:
        logger.error("NDC autocomplete failed (%s)", type(e).__name__)
        return AutocompleteResponse()
