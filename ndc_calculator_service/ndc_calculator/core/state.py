"""
Process-wide collaborators, built once at startup and passed to whoever
needs them. Nothing here is a module global.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import requests

from ndc_calculator.core.llm_config import USE_LLM_REWRITE
from ndc_calculator.core.settings import CACHE_MAX_ENTRIES, RESOLVER_WORKERS
from ndc_calculator.services.autocomplete import Autocomplete
from ndc_calculator.services.cache import TTLCache
from ndc_calculator.services.coalescer import RequestCoalescer
from ndc_calculator.services.fda_client import FdaClient
from ndc_calculator.services.instruction_parser import InstructionParser
from ndc_calculator.services.llm.instruction import ChatJson, GenerativeInstructionParser
from ndc_calculator.services.llm.provider import build_chat_json
from ndc_calculator.services.resolver import Resolver
from ndc_calculator.services.rxnorm_client import RxNormClient

logger = logging.getLogger(__name__)


@dataclass
class SharedState:
    cache: TTLCache
    coalescer: RequestCoalescer
    executor: ThreadPoolExecutor
    session: requests.Session
    parser: InstructionParser
    resolver: Resolver
    autocomplete: Autocomplete

    def close(self) -> None:
        self.executor.shutdown(wait=True)
        self.session.close()
        self.coalescer.clear()
        self.cache.clear()


def build_shared_state(
    chat_json: Optional[ChatJson] = None,
    *,
    use_llm: bool = True,
    session: Optional[requests.Session] = None,
    max_entries: int = CACHE_MAX_ENTRIES,
    workers: int = RESOLVER_WORKERS,
) -> SharedState:
    cache = TTLCache(max_entries=max_entries)
    coalescer = RequestCoalescer()
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="resolver")
    session = session or requests.Session()

    if chat_json is None and use_llm:
        chat_json = build_chat_json()
    fallback = GenerativeInstructionParser(chat_json, coalescer) if chat_json else None
    parser = InstructionParser(cache, fallback=fallback, allow_rewrite=USE_LLM_REWRITE)

    rxnorm = RxNormClient(session, cache, coalescer)
    fda = FdaClient(session, cache, coalescer, rxnorm=rxnorm)
    resolver = Resolver(parser, rxnorm, fda, executor)
    autocomplete = Autocomplete(rxnorm, fda, executor)

    logger.info("Shared state ready (cache=%d entries, workers=%d, fallback=%s)",
                max_entries, workers, "on" if fallback else "off")
    return SharedState(cache, coalescer, executor, session, parser, resolver, autocomplete)
