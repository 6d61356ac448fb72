# ndc_calculator/agent/nodes.py
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ndc_calculator.agent.state import ParseState
from ndc_calculator.core.settings import ACCEPT_CONFIDENCE, MAX_REWRITE_DEPTH, SIG_PARSE_TTL
from ndc_calculator.schemas.models import ParsedInstruction
from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.cache_keys import sig_parse_key
from ndc_calculator.services.llm.instruction import GenerativeInstructionParser
from ndc_calculator.services.sig_matcher import match_instruction

logger = logging.getLogger(__name__)

Matcher = Callable[[str], Optional[ParsedInstruction]]


def _audit(state: ParseState, event: str, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    audit = list(state.get("audit") or [])
    audit.append({"event": event, **(extra or {})})
    logger.debug("parse.%s %s", event, extra or "")
    return {"audit": audit}


class ParseNodes:
    """Node and routing functions for the parse graph, bound to their collaborators."""

    def __init__(
        self,
        cache: TTLCache,
        matcher: Matcher = match_instruction,
        fallback: Optional[GenerativeInstructionParser] = None,
        allow_rewrite: bool = True,
        accept_confidence: float = ACCEPT_CONFIDENCE,
        max_rewrite_depth: int = MAX_REWRITE_DEPTH,
        ttl_seconds: float = SIG_PARSE_TTL,
    ):
        self.cache = cache
        self.matcher = matcher
        self.fallback = fallback
        self.allow_rewrite = allow_rewrite
        self.accept_confidence = accept_confidence
        self.max_rewrite_depth = max_rewrite_depth
        self.ttl_seconds = ttl_seconds

    # ---------------------------
    # nodes
    # ---------------------------
    def cache_lookup(self, state: ParseState) -> Dict[str, Any]:
        key = sig_parse_key(state["instruction"])
        cached = self.cache.get(key)
        if cached is None:
            return {"parsed": None, **_audit(state, "cache.miss", {"depth": state.get("depth", 0)})}

        try:
            parsed = ParsedInstruction.model_validate(cached)
        except ValidationError:
            logger.warning("Invalid cached instruction, clearing: %s", key)
            self.cache.delete(key)
            return {"parsed": None, **_audit(state, "cache.invalid")}

        return {"parsed": parsed.model_dump(), "source": "cache", **_audit(state, "cache.hit")}

    def matcher_attempt(self, state: ParseState) -> Dict[str, Any]:
        result = self.matcher(state["instruction"])
        if result is not None and result.confidence >= self.accept_confidence:
            return {
                "parsed": result.model_dump(),
                "source": "matcher",
                **_audit(state, "matcher.accepted", {"confidence": result.confidence}),
            }

        extra = {"confidence": result.confidence} if result is not None else {}
        return {"parsed": None, **_audit(state, "matcher.rejected", extra)}

    def fallback_attempt(self, state: ParseState) -> Dict[str, Any]:
        if self.fallback is None:
            return _audit(state, "fallback.disabled")

        result = self.fallback.parse(state["instruction"])
        if result is None:
            return _audit(state, "fallback.failed")
        return {
            "parsed": result.model_dump(),
            "source": "fallback",
            **_audit(state, "fallback.accepted", {"confidence": result.confidence}),
        }

    def rewrite_attempt(self, state: ParseState) -> Dict[str, Any]:
        depth = state.get("depth", 0) + 1
        rewritten = self.fallback.rewrite(state["instruction"]) if self.fallback else None
        if not rewritten:
            return {"depth": depth, "rewritten": None, **_audit(state, "rewrite.unavailable")}

        logger.info("Instruction rewritten: %r -> %r", state["instruction"], rewritten)
        return {
            "depth": depth,
            "instruction": rewritten,
            "rewritten": rewritten,
            **_audit(state, "rewrite.done", {"depth": depth}),
        }

    def cache_store(self, state: ParseState) -> Dict[str, Any]:
        parsed = state["parsed"]
        self.cache.set(state["original_key"], parsed, self.ttl_seconds)
        if state.get("rewritten"):
            self.cache.set(sig_parse_key(state["rewritten"]), parsed, self.ttl_seconds)
        return _audit(state, "cache.stored", {"source": state.get("source")})

    # ---------------------------
    # routing
    # ---------------------------
    def route_after_lookup(self, state: ParseState) -> str:
        if not state.get("parsed"):
            return "matcher"
        # a hit for the rewritten text still has to land under the original key
        return "store" if state.get("rewritten") else "done"

    def route_after_matcher(self, state: ParseState) -> str:
        return "store" if state.get("parsed") else "fallback"

    def route_after_fallback(self, state: ParseState) -> str:
        if state.get("parsed"):
            return "store"
        if self.allow_rewrite and self.fallback is not None and state.get("depth", 0) < self.max_rewrite_depth:
            return "rewrite"
        return "done"

    def route_after_rewrite(self, state: ParseState) -> str:
        return "lookup" if state.get("rewritten") else "done"
