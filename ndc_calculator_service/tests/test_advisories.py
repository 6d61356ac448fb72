from ndc_calculator.schemas.models import PackageCandidate, ParsedInstruction
from ndc_calculator.services.advisories import generate_advisories
from ndc_calculator.services.ranking import rank_candidates


def _parsed(unit="tablet"):
    return ParsedInstruction(dose=1, frequency=2, unit=unit, confidence=0.95)


def _candidate(units, form="TABLET", active=True):
    return PackageCandidate(
        identifier="00001-0001-30",
        units_per_package=units,
        package_unit="tablet",
        dosage_form=form,
        is_active=active,
    )


def _by_kind(selections):
    return {s.kind: s for s in selections}


def test_overfill_and_underfill_messages():
    candidate = _candidate(30)
    selections = _by_kind(rank_candidates([candidate], 100).selections)

    multi = generate_advisories(selections["multi"], 100, _parsed(), candidate)
    assert [a.kind for a in multi] == ["overfill"]
    assert multi[0].message == "Recommended package results in 20.0% waste (20 units excess)"

    single = generate_advisories(selections["single"], 100, _parsed(), candidate)
    assert [a.kind for a in single] == ["underfill"]
    assert "Requires 4 packages" in single[0].message


def test_small_overfill_is_not_reported():
    candidate = _candidate(63)
    selection = rank_candidates([candidate], 60).selections[0]

    assert generate_advisories(selection, 60, _parsed(), candidate) == []


def test_form_mismatch():
    candidate = _candidate(60, form="CAPSULE")
    selection = rank_candidates([candidate], 60).selections[0]

    advisories = generate_advisories(selection, 60, _parsed("tablet"), candidate)

    assert [a.kind for a in advisories] == ["form_mismatch"]
    assert advisories[0].message == "Instruction specifies tablet but NDC is CAPSULE. Please verify."


def test_matching_form_and_exact_fill_is_clean():
    candidate = _candidate(60, form="TABLET, FILM COATED")
    selection = rank_candidates([candidate], 60).selections[0]

    assert generate_advisories(selection, 60, _parsed(), candidate) == []


def test_inactive_candidate_is_an_error():
    active = _candidate(60)
    selection = rank_candidates([active], 60).selections[0]
    inactive = _candidate(60, active=False)

    advisories = generate_advisories(selection, 60, _parsed(), inactive)

    assert advisories[0].kind == "inactive_identifier"
    assert advisories[0].severity == "error"
