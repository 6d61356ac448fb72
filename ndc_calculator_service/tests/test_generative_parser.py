import requests

from conftest import no_sleep
from ndc_calculator.services.errors import PayloadValidationError
from ndc_calculator.services.llm.instruction import GenerativeInstructionParser


class FakeChat:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def __call__(self, *, system, user, schema):
        self.calls.append({"system": system, "user": user, "schema": schema})
        answer = self.answers.pop(0) if self.answers else {}
        if isinstance(answer, BaseException):
            raise answer
        return answer


def _parser(chat, coalescer, **kwargs):
    return GenerativeInstructionParser(chat, coalescer, sleep=no_sleep, **kwargs)


def test_parse_returns_sanitized_instruction(coalescer):
    chat = FakeChat({"dose": 1, "frequency": 2, "unit": "tablet", "confidence": 0.9})

    parsed = _parser(chat, coalescer).parse("tk 1 po bid")

    assert parsed.frequency == 2
    assert "tk 1 po bid" in chat.calls[0]["user"]


def test_parse_retries_transient_failures(coalescer):
    chat = FakeChat(
        requests.Timeout("slow"),
        {"dose": 1, "frequency": 1, "unit": "tablet", "confidence": 0.9},
    )

    parsed = _parser(chat, coalescer, max_attempts=2).parse("1 daily")

    assert parsed is not None
    assert len(chat.calls) == 2


def test_parse_gives_up_quietly(coalescer):
    chat = FakeChat(requests.Timeout("slow"), requests.Timeout("slow"), requests.Timeout("slow"))

    assert _parser(chat, coalescer, max_attempts=2).parse("1 daily") is None
    assert len(chat.calls) == 2


def test_invalid_payload_is_not_retried(coalescer):
    chat = FakeChat(PayloadValidationError("not json"))

    assert _parser(chat, coalescer).parse("1 daily") is None
    assert len(chat.calls) == 1


def test_out_of_contract_answer_is_none(coalescer):
    chat = FakeChat({"dose": 1, "frequency": 2, "unit": "lozenge", "confidence": 0.9})

    assert _parser(chat, coalescer).parse("1 lozenge bid") is None


def test_rewrite(coalescer):
    chat = FakeChat({"instruction": "Take 1 tablet by mouth twice daily"}, {"instruction": "tk 1 bid"})
    parser = _parser(chat, coalescer)

    assert parser.rewrite("tk 1 bid") == "Take 1 tablet by mouth twice daily"
    assert parser.rewrite("tk 1 bid") is None
