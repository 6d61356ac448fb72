from typing import Dict, Optional

import pytest

from ndc_calculator.schemas.models import ParsedInstruction
from ndc_calculator.services.cache_keys import sig_parse_key
from ndc_calculator.services.instruction_parser import InstructionParser


def _instruction(confidence: float = 0.95, frequency: float = 2) -> ParsedInstruction:
    return ParsedInstruction(dose=1, frequency=frequency, unit="tablet", confidence=confidence)


class StubMatcher:
    def __init__(self, results: Optional[Dict[str, ParsedInstruction]] = None):
        self.results = results or {}
        self.calls = []

    def __call__(self, text: str) -> Optional[ParsedInstruction]:
        self.calls.append(text)
        return self.results.get(text)


class StubFallback:
    def __init__(self, parses=None, rewrites=None):
        self.parses = parses or {}
        self.rewrites = rewrites or {}
        self.parse_calls = []
        self.rewrite_calls = []

    def parse(self, text):
        self.parse_calls.append(text)
        return self.parses.get(text)

    def rewrite(self, text):
        self.rewrite_calls.append(text)
        return self.rewrites.get(text)


def _events(state):
    return [entry["event"] for entry in state["audit"]]


def test_matcher_result_is_accepted_and_cached(cache):
    text = "Take 1 tablet by mouth twice daily"
    matcher = StubMatcher({text: _instruction()})
    parser = InstructionParser(cache, matcher=matcher)

    state = parser.run(text)

    assert state["source"] == "matcher"
    assert _events(state) == ["cache.miss", "matcher.accepted", "cache.stored"]
    assert cache.get(sig_parse_key(text))["frequency"] == 2


def test_second_parse_is_served_from_cache(cache):
    text = "Take 1 tablet by mouth twice daily"
    matcher = StubMatcher({text: _instruction()})
    parser = InstructionParser(cache, matcher=matcher)

    parser.parse(text)
    state = parser.run("take 1 tablet, by mouth twice daily")

    assert state["source"] == "cache"
    assert len(matcher.calls) == 1


def test_real_matcher_end_to_end(cache):
    parsed = InstructionParser(cache).parse("Take 2 capsules by mouth three times daily")

    assert (parsed.dose, parsed.frequency, parsed.unit) == (2, 3, "capsule")


@pytest.mark.parametrize("text, dose, unit", [
    ("Take 1 tablet daily", 1, "tablet"),
    ("1 tablet daily", 1, "tablet"),
    ("take 2 capsules daily", 2, "capsule"),
])
def test_plain_daily_instruction_is_accepted_without_fallback(cache, text, dose, unit):
    state = InstructionParser(cache).run(text)

    assert state["source"] == "matcher"
    assert _events(state) == ["cache.miss", "matcher.accepted", "cache.stored"]
    parsed = InstructionParser(cache).parse(text)
    assert (parsed.dose, parsed.frequency, parsed.unit) == (dose, 1, unit)


def test_low_confidence_match_goes_to_fallback(cache):
    text = "1 tab bid-ish"
    matcher = StubMatcher({text: _instruction(confidence=0.75)})
    fallback = StubFallback(parses={text: _instruction(confidence=0.9, frequency=2)})
    parser = InstructionParser(cache, fallback=fallback, matcher=matcher)

    state = parser.run(text)

    assert state["source"] == "fallback"
    assert fallback.parse_calls == [text]
    assert _events(state)[-1] == "cache.stored"


def test_low_confidence_match_is_dropped_without_fallback(cache):
    text = "1 tab bid-ish"
    parser = InstructionParser(cache, matcher=StubMatcher({text: _instruction(confidence=0.75)}))

    state = parser.run(text)

    assert not state.get("parsed")
    assert _events(state) == ["cache.miss", "matcher.rejected", "fallback.disabled"]
    assert parser.parse(text) is None
    assert len(cache) == 0


def test_rewrite_is_reparsed_and_cached_under_both_keys(cache):
    original = "tk i tab po bid"
    rewritten = "Take 1 tablet by mouth twice daily"
    matcher = StubMatcher({rewritten: _instruction()})
    fallback = StubFallback(rewrites={original: rewritten})
    parser = InstructionParser(cache, fallback=fallback, matcher=matcher)

    state = parser.run(original)

    assert state["rewritten"] == rewritten
    assert state["source"] == "matcher"
    assert matcher.calls == [original, rewritten]
    assert cache.get(sig_parse_key(original)) == cache.get(sig_parse_key(rewritten))
    assert cache.get(sig_parse_key(original))["frequency"] == 2


def test_rewrite_hit_in_cache_still_stores_original_key(cache):
    original = "tk i tab po bid"
    rewritten = "Take 1 tablet by mouth twice daily"
    cache.set(sig_parse_key(rewritten), _instruction().model_dump(), 60)
    fallback = StubFallback(rewrites={original: rewritten})
    parser = InstructionParser(cache, fallback=fallback, matcher=StubMatcher())

    state = parser.run(original)

    assert state["source"] == "cache"
    assert _events(state)[-1] == "cache.stored"
    assert cache.get(sig_parse_key(original)) is not None


def test_rewrite_happens_at_most_once(cache):
    fallback = StubFallback(rewrites={"a b c": "d e f", "d e f": "g h i"})
    parser = InstructionParser(cache, fallback=fallback, matcher=StubMatcher())

    state = parser.run("a b c")

    assert fallback.rewrite_calls == ["a b c"]
    assert fallback.parse_calls == ["a b c", "d e f"]
    assert state["depth"] == 1
    assert not state.get("parsed")


def test_rewrite_can_be_switched_off(cache):
    fallback = StubFallback(rewrites={"a b c": "d e f"})
    parser = InstructionParser(cache, fallback=fallback, allow_rewrite=False, matcher=StubMatcher())

    assert parser.parse("a b c") is None
    assert fallback.rewrite_calls == []


def test_invalid_cached_value_is_evicted(cache):
    text = "Take 1 tablet by mouth twice daily"
    cache.set(sig_parse_key(text), {"dose": "lots"}, 60)
    parser = InstructionParser(cache, matcher=StubMatcher({text: _instruction()}))

    state = parser.run(text)

    assert _events(state)[:2] == ["cache.invalid", "matcher.accepted"]
    assert cache.get(sig_parse_key(text))["dose"] == 1


def test_empty_text_is_rejected_up_front(cache):
    matcher = StubMatcher()
    parser = InstructionParser(cache, matcher=matcher)

    assert parser.parse("   ") is None
    assert matcher.calls == []
