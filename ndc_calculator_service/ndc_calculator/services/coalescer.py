import logging
import threading
from concurrent.futures import Future
from typing import Callable, Dict, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """
    Shares one in-flight call among concurrent callers asking for the same key.

    The first caller runs the operation; everyone arriving while it runs waits
    on the same Future and receives the same result or the same exception.
    The record is dropped as soon as the call settles, so the next call for
    that key runs fresh.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Dict[str, Future] = {}

    def dedupe(self, key: str, operation: Callable[[], T]) -> T:
        with self._lock:
            future = self._pending.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._pending[key] = future

        if not leader:
            logger.debug("Request coalesced: %s", key)
            return future.result()

        try:
            result = operation()
        except BaseException as exc:
            self._settle(key)
            future.set_exception(exc)
            logger.debug("Request failed: %s", key)
            raise

        self._settle(key)
        future.set_result(result)
        logger.debug("Request completed: %s", key)
        return result

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()

    def _settle(self, key: str) -> None:
        with self._lock:
            self._pending.pop(key, None)
