import os
from typing import Any, Dict, Optional

from huggingface_hub import InferenceClient

from ndc_calculator.core.llm_config import HF_MAX_TOKENS, HF_TEMPERATURE, HF_TIMEOUT_S
from ndc_calculator.services.errors import UpstreamError
from ndc_calculator.services.ollama_client import chat_messages, extract_json_object


def response_format(schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not schema:
        return {"type": "json_object"}
    return {
        "type": "json_schema",
        "json_schema": {"name": schema.get("title", "reply"), "schema": schema, "strict": True},
    }


class HuggingFaceChat:
    """Structured chat through huggingface_hub's inference providers."""

    def __init__(
        self,
        model: str,
        temperature: float = HF_TEMPERATURE,
        max_tokens: int = HF_MAX_TOKENS,
        timeout_s: float = HF_TIMEOUT_S,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s

    def _client(self) -> InferenceClient:
        # token and provider are read per call so a rotated token needs no restart
        token = os.getenv("HF_TOKEN", "").strip()
        if not token:
            raise UpstreamError("HF_TOKEN is not set", service="huggingface")
        provider = os.getenv("HF_PROVIDER", "").strip() or "auto"
        return InferenceClient(provider=provider, api_key=token, timeout=float(self.timeout_s))

    def __call__(self, *, system: str, user: str, schema: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        # hub HTTP errors carry .response, which the retry policy classifies
        out = self._client().chat_completion(
            model=self.model,
            messages=chat_messages(system, user),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format=response_format(schema),
        )
        return extract_json_object(out.choices[0].message.content)
