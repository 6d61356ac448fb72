# ndc_calculator/services/llm/instruction.py
import logging
from typing import Any, Callable, Dict, Optional

from ndc_calculator.core.llm_config import LLM_MAX_ATTEMPTS
from ndc_calculator.schemas.models import ParsedInstruction
from ndc_calculator.services.cache_keys import llm_parse_key, llm_rewrite_key
from ndc_calculator.services.coalescer import RequestCoalescer
from ndc_calculator.services.llm.instruction_prompt import (
    PARSE_SYSTEM_PROMPT,
    REWRITE_SYSTEM_PROMPT,
    parse_user_prompt,
    rewrite_user_prompt,
)
from ndc_calculator.services.llm.instruction_sanitize import sanitize_instruction, sanitize_rewrite
from ndc_calculator.services.llm.instruction_schema import INSTRUCTION_SCHEMA, REWRITE_SCHEMA
from ndc_calculator.services.retry import with_retry

logger = logging.getLogger(__name__)

ChatJson = Callable[..., Dict[str, Any]]


class GenerativeInstructionParser:
    """
    Model-backed parser used when the pattern matcher is unsure.

    Never raises: transport errors, bad JSON and out-of-contract answers are
    logged and come back as None.
    """

    def __init__(
        self,
        chat_json: ChatJson,
        coalescer: RequestCoalescer,
        max_attempts: int = LLM_MAX_ATTEMPTS,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        self._chat_json = chat_json
        self._coalescer = coalescer
        self._max_attempts = max_attempts
        self._sleep = sleep

    def _call(self, key: str, system: str, user: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        retry_kwargs: Dict[str, Any] = {"max_attempts": self._max_attempts}
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep

        def operation() -> Dict[str, Any]:
            return with_retry(
                lambda: self._chat_json(system=system, user=user, schema=schema),
                **retry_kwargs,
            )

        return self._coalescer.dedupe(key, operation)

    def parse(self, instruction: str) -> Optional[ParsedInstruction]:
        try:
            raw = self._call(
                llm_parse_key(instruction),
                PARSE_SYSTEM_PROMPT,
                parse_user_prompt(instruction),
                INSTRUCTION_SCHEMA,
            )
        except Exception as exc:
            logger.warning("Generative parse failed (%s)", type(exc).__name__)
            return None

        parsed = sanitize_instruction(raw)
        if parsed is None:
            logger.warning("Generative parse returned an unusable answer")
        return parsed

    def rewrite(self, instruction: str) -> Optional[str]:
        try:
            raw = self._call(
                llm_rewrite_key(instruction),
                REWRITE_SYSTEM_PROMPT,
                rewrite_user_prompt(instruction),
                REWRITE_SCHEMA,
            )
        except Exception as exc:
            logger.warning("Instruction rewrite failed (%s)", type(exc).__name__)
            return None
        return sanitize_rewrite(raw, instruction)
