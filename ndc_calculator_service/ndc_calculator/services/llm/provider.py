from typing import Optional

from ndc_calculator.core.llm_config import (
    HF_MODEL_PARSE,
    LLM_PROVIDER,
    OLLAMA_MODEL_PARSE,
    USE_LLM_FALLBACK,
)
from ndc_calculator.services.hf_client import HuggingFaceChat
from ndc_calculator.services.llm.instruction import ChatJson
from ndc_calculator.services.ollama_client import OllamaChat


def build_chat_json(provider: Optional[str] = None, enabled: bool = USE_LLM_FALLBACK) -> Optional[ChatJson]:
    """Chat callable bound to the parse model, or None when the fallback is switched off."""
    if not enabled:
        return None
    name = (provider or LLM_PROVIDER).strip().lower()
    if name == "hf":
        return HuggingFaceChat(HF_MODEL_PARSE)
    if name == "ollama":
        return OllamaChat(OLLAMA_MODEL_PARSE)
    raise ValueError(f"Unknown LLM_PROVIDER: {name}")
