import json
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.coalescer import RequestCoalescer


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None and self.text:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """
    Routes GETs by URL substring. A route value may be a FakeResponse, an
    exception to raise, or a callable taking the params dict.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None):
        self.calls.append({"url": url, "params": params or {}, "timeout": timeout})
        for fragment, handler in self.routes.items():
            if fragment in url:
                if isinstance(handler, BaseException):
                    raise handler
                if callable(handler) and not isinstance(handler, FakeResponse):
                    return handler(params or {})
                return handler
        return FakeResponse(404, {})

    def close(self) -> None:
        pass

    def count(self, fragment: str) -> int:
        return sum(1 for c in self.calls if fragment in c["url"])


def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(max_entries=100, clock=clock)


@pytest.fixture
def coalescer() -> RequestCoalescer:
    return RequestCoalescer()


@pytest.fixture
def timeout_error() -> Callable[[], Exception]:
    return lambda: requests.Timeout("timed out")


def fda_product(
    product_ndc: str = "0071-0155",
    generic_name: str = "LISINOPRIL",
    dosage_form: str = "TABLET",
    packages: Optional[Dict[str, str]] = None,
    expiration: Optional[str] = None,
) -> Dict[str, Any]:
    """One openFDA NDC directory result; packages maps package_ndc -> description."""
    packages = packages or {
        f"{product_ndc}-23": "100 TABLET in 1 BOTTLE",
        f"{product_ndc}-40": "30 TABLET in 1 BOTTLE",
    }
    result: Dict[str, Any] = {
        "product_ndc": product_ndc,
        "generic_name": generic_name,
        "labeler_name": "Acme Pharma",
        "dosage_form": dosage_form,
        "packaging": [{"package_ndc": ndc, "description": desc} for ndc, desc in packages.items()],
    }
    if expiration:
        result["listing_expiration_date"] = expiration
    return result


def rxcui_response(rxcui: Optional[str]) -> FakeResponse:
    ids = [rxcui] if rxcui else []
    return FakeResponse(200, {"idGroup": {"name": "x", "rxnormId": ids}} if ids else {"idGroup": {"name": "x"}})


def fda_search(table: Dict[str, List[Dict[str, Any]]]) -> Callable[[Dict[str, Any]], FakeResponse]:
    """openFDA stand-in answering by the `search` param; unknown queries are a 404 like the real API."""
    def handler(params: Dict[str, Any]) -> FakeResponse:
        results = table.get(params.get("search"))
        if results is None:
            return FakeResponse(404, {"error": {"code": "NOT_FOUND"}})
        return FakeResponse(200, {"results": results})
    return handler
