import json
from typing import Any, Dict, List, Optional

import requests

from ndc_calculator.core.llm_config import (
    OLLAMA_BASE_URL,
    OLLAMA_TEMPERATURE,
    OLLAMA_TIMEOUT_S,
)
from ndc_calculator.services.errors import PayloadValidationError, UpstreamError

_decoder = json.JSONDecoder()


def chat_messages(system: str, user: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    First JSON object in a model reply. Small models wrap the object in prose
    or a ``` fence, so decoding is retried from every '{' in turn.
    """
    text = text or ""
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
    raise PayloadValidationError(f"No JSON object in model reply: {text[:80]!r}")


class OllamaChat:
    """Structured chat against an Ollama server (/api/chat with `format`)."""

    def __init__(
        self,
        model: str,
        base_url: str = OLLAMA_BASE_URL,
        session: Optional[requests.Session] = None,
        temperature: float = OLLAMA_TEMPERATURE,
        timeout_s: float = OLLAMA_TIMEOUT_S,
    ):
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat"
        self.session = session or requests.Session()
        self.temperature = temperature
        self.timeout_s = timeout_s

    def __call__(self, *, system: str, user: str, schema: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": chat_messages(system, user),
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if schema is not None:
            body["format"] = schema

        r = self.session.post(self.url, json=body, timeout=self.timeout_s)
        if r.status_code >= 400:
            # status only; the body stays out of anything user-facing
            raise UpstreamError(f"ollama returned {r.status_code}", status_code=r.status_code, service="ollama")

        try:
            reply = r.json()
        except ValueError as exc:
            raise PayloadValidationError("ollama returned a non-JSON body") from exc
        if not isinstance(reply, dict):
            raise PayloadValidationError("ollama returned an unexpected body")
        return extract_json_object((reply.get("message") or {}).get("content"))
