import logging
from typing import Optional

from ndc_calculator.agent.graph import build_parse_graph
from ndc_calculator.agent.nodes import Matcher, ParseNodes
from ndc_calculator.schemas.models import ParsedInstruction
from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.cache_keys import sig_parse_key
from ndc_calculator.services.llm.instruction import GenerativeInstructionParser
from ndc_calculator.services.sig_matcher import match_instruction

logger = logging.getLogger(__name__)


class InstructionParser:
    """
    Single entry point for instruction parsing: cache, pattern matcher,
    generative fallback and at most one rewrite, run as a LangGraph graph.
    """

    def __init__(
        self,
        cache: TTLCache,
        fallback: Optional[GenerativeInstructionParser] = None,
        allow_rewrite: bool = True,
        matcher: Matcher = match_instruction,
    ):
        self.nodes = ParseNodes(cache, matcher=matcher, fallback=fallback, allow_rewrite=allow_rewrite)
        self.graph = build_parse_graph(self.nodes)

    def run(self, text: str) -> dict:
        """Full final graph state, audit trail included."""
        return self.graph.invoke({
            "instruction": text,
            "original_key": sig_parse_key(text),
            "depth": 0,
            "audit": [],
        })

    def parse(self, text: str) -> Optional[ParsedInstruction]:
        if not text or not isinstance(text, str) or not text.strip():
            return None

        final = self.run(text)
        parsed = final.get("parsed")
        if not parsed:
            logger.warning("Failed to parse instruction: %.50s", text)
            return None

        logger.debug("Instruction parsed via %s: %.50s", final.get("source"), text)
        return ParsedInstruction.model_validate(parsed)
