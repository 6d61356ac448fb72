import os

from ndc_calculator.core.env import load_env

load_env()

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama").strip().lower()

OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/api")
OLLAMA_MODEL_PARSE = os.getenv("OLLAMA_MODEL_PARSE", "llama3.2")
OLLAMA_TEMPERATURE = float(os.getenv("OLLAMA_TEMPERATURE", "0"))
OLLAMA_TIMEOUT_S = int(os.getenv("OLLAMA_TIMEOUT_S", "10"))

HF_MODEL_PARSE = os.getenv("HF_MODEL_PARSE", "meta-llama/Llama-3.1-8B-Instruct")
HF_TEMPERATURE = float(os.getenv("HF_TEMPERATURE", "0"))
HF_MAX_TOKENS = int(os.getenv("HF_MAX_TOKENS", "200"))
HF_TIMEOUT_S = int(os.getenv("HF_TIMEOUT_S", "10"))

# fallback parser costs a model call, keep it to 2 attempts
LLM_MAX_ATTEMPTS = int(os.getenv("LLM_MAX_ATTEMPTS", "2"))

USE_LLM_FALLBACK = os.getenv("USE_LLM_FALLBACK", "true").lower() == "true"
USE_LLM_REWRITE = os.getenv("USE_LLM_REWRITE", "true").lower() == "true"
