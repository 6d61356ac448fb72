from datetime import date

import pytest

from conftest import FakeResponse, FakeSession, fda_product, fda_search, no_sleep
from ndc_calculator.services.errors import PayloadValidationError, UpstreamError
from ndc_calculator.services.fda_client import FdaClient, is_active, to_candidates
from ndc_calculator.services.rxnorm_client import RxNormClient

TODAY = date(2026, 1, 15)


def _client(session, cache, coalescer, rxnorm=None):
    return FdaClient(
        session, cache, coalescer,
        rxnorm=rxnorm,
        url="https://fda.test/drug/ndc.json",
        api_key="",
        today=lambda: TODAY,
        sleep=no_sleep,
    )


@pytest.mark.parametrize("expiration, expected", [
    (None, True),
    ("20261231", True),
    ("20260115", True),
    ("20251231", False),
    ("garbage!", True),
])
def test_is_active(expiration, expected):
    assert is_active(expiration, TODAY) is expected


def test_to_candidates_normalizes_and_skips_unreadable_packages():
    result = fda_product(packages={
        "0071-0155-23": "100 TABLET, FILM COATED in 1 BOTTLE (0071-0155-23)",
        "0071-0155-99": "SEE PACKAGE INSERT",
        "0071-0155-10": "3 BLISTER PACK in 1 CARTON / 10 TABLET in 1 BLISTER PACK",
    })

    candidates = to_candidates([result], TODAY)

    assert [c.identifier for c in candidates] == ["00071-0155-23", "00071-0155-10"]
    assert [c.units_per_package for c in candidates] == [100, 30]
    assert all(c.package_unit == "tablet" for c in candidates)
    assert candidates[0].manufacturer == "Acme Pharma"
    assert candidates[0].generic_name == "LISINOPRIL"


def test_expired_listing_is_inactive():
    candidates = to_candidates([fda_product(expiration="20200101")], TODAY)

    assert candidates
    assert not any(c.is_active for c in candidates)


def test_packages_by_rxcui_is_cached(cache, coalescer):
    session = FakeSession({"fda.test": fda_search({'openfda.rxcui:"29046"': [fda_product()]})})
    client = _client(session, cache, coalescer)

    first = client.packages_by_rxcui("29046")
    second = client.packages_by_rxcui("29046")

    assert [c.identifier for c in first] == ["00071-0155-23", "00071-0155-40"]
    assert first == second
    assert session.count("fda.test") == 1
    assert session.calls[0]["params"]["limit"] == 100
    assert "api_key" not in session.calls[0]["params"]


def test_packages_by_rxcui_falls_back_to_generic_name(cache, coalescer):
    properties = {"properties": {"name": "lisinopril", "synonym": "", "tty": "IN"}}
    session = FakeSession({
        "fda.test": fda_search({'generic_name:"LISINOPRIL"': [fda_product()]}),
        "/rxcui/29046/properties.json": FakeResponse(200, properties),
    })
    rxnorm = RxNormClient(session, cache, coalescer, base_url="https://rxnav.test/REST", sleep=no_sleep)

    packages = _client(session, cache, coalescer, rxnorm=rxnorm).packages_by_rxcui("29046")

    assert len(packages) == 2
    assert [c["params"]["search"] for c in session.calls if "fda.test" in c["url"]] == [
        'openfda.rxcui:"29046"',
        'generic_name:"LISINOPRIL"',
    ]


def test_packages_by_rxcui_without_fallback_is_empty(cache, coalescer):
    session = FakeSession({"fda.test": fda_search({})})

    assert _client(session, cache, coalescer).packages_by_rxcui("29046") == []


def test_packages_by_product_ndc_queries_every_layout(cache, coalescer):
    query = 'product_ndc:"00071-0155" product_ndc:"0071-0155" product_ndc:"00071-155"'
    session = FakeSession({"fda.test": fda_search({query: [fda_product()]})})

    packages = _client(session, cache, coalescer).packages_by_product_ndc("00071015523")

    assert len(packages) == 2


def test_invalid_ndc_does_not_call_out(cache, coalescer):
    session = FakeSession()

    assert _client(session, cache, coalescer).packages_by_product_ndc("not-an-ndc") == []
    assert session.calls == []


def test_api_key_is_sent_when_configured(cache, coalescer):
    session = FakeSession({"fda.test": fda_search({})})
    client = FdaClient(session, cache, coalescer, url="https://fda.test/drug/ndc.json", api_key="k", sleep=no_sleep)

    client.packages_by_generic_name("lisinopril")

    assert session.calls[0]["params"]["api_key"] == "k"


def test_client_errors_are_not_retried(cache, coalescer):
    session = FakeSession({"fda.test": FakeResponse(400, {"error": "bad query"})})

    with pytest.raises(UpstreamError) as info:
        _client(session, cache, coalescer).packages_by_generic_name("lisinopril")

    assert info.value.status_code == 400
    assert session.count("fda.test") == 1


def test_unexpected_body_is_rejected(cache, coalescer):
    session = FakeSession({"fda.test": FakeResponse(200, ["not", "a", "dict"])})

    with pytest.raises(PayloadValidationError):
        _client(session, cache, coalescer).packages_by_generic_name("lisinopril")


def test_generic_name_prefixes_match_the_whole_prefix(cache, coalescer):
    session = FakeSession({"fda.test": fda_search({"generic_name:LISINOPRIL*": [
        fda_product(generic_name="LISINOPRIL AND HYDROCHLOROTHIAZIDE"),
        fda_product(generic_name="LISINOPRIL"),
        fda_product(generic_name="LISINOPRIL AND HYDROCHLOROTHIAZIDE"),
    ]})})
    client = _client(session, cache, coalescer)

    assert client.generic_name_prefixes("lisinopril and") == ["LISINOPRIL AND HYDROCHLOROTHIAZIDE"]
    assert client.generic_name_prefixes('"Lisinopril And"') == ["LISINOPRIL AND HYDROCHLOROTHIAZIDE"]
    assert session.count("fda.test") == 1
    assert session.calls[0]["params"]["limit"] == 50


def test_generic_name_prefixes_skip_short_queries(cache, coalescer):
    session = FakeSession()

    assert _client(session, cache, coalescer).generic_name_prefixes("li") == []
    assert session.calls == []


def test_ndc_suggestions_list_matching_packages(cache, coalescer):
    products = [
        fda_product(),
        fda_product(product_ndc="0071-0222", packages={"0071-0222-10": "10 TABLET in 1 BOTTLE"}),
    ]
    session = FakeSession({"fda.test": fda_search({"package_ndc:0071-01*": products})})
    client = _client(session, cache, coalescer)

    assert client.ndc_suggestions(" 0071-01") == ["0071-0155-23", "0071-0155-40"]
    assert client.ndc_suggestions("0071-01") == ["0071-0155-23", "0071-0155-40"]
    assert session.count("fda.test") == 1


@pytest.mark.parametrize("prefix", ["", "0", "abc", "00-7x", "-0071"])
def test_ndc_suggestions_ignore_unusable_prefixes(cache, coalescer, prefix):
    session = FakeSession()

    assert _client(session, cache, coalescer).ndc_suggestions(prefix) == []
    assert session.calls == []


def test_ndc_suggestions_with_no_listing(cache, coalescer):
    session = FakeSession({"fda.test": fda_search({})})

    assert _client(session, cache, coalescer).ndc_suggestions("99999") == []
