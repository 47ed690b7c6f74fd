import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """
    Shares one in-flight computation per key between concurrent callers.

    The first caller for a key starts the producer; everyone arriving while it
    runs awaits the same task and gets the same result or exception. The key is
    released as soon as the producer settles, so a failure never blocks the
    next attempt.
    """

    def __init__(self):
        self._pending: Dict[str, asyncio.Task] = {}

    async def get_or_create(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        task = self._pending.get(key)
        if task is not None:
            logger.debug(f"Reusing in-flight request for {key}")
        else:
            task = asyncio.ensure_future(self._run(key, producer))
            self._pending[key] = task
            logger.debug(f"Started request for {key}")

        # A cancelled caller must not cancel the fetch the others are waiting on
        return await asyncio.shield(task)

    async def _run(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await producer()
        finally:
            # Released before any waiter sees the outcome
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def pending_keys(self) -> List[str]:
        return list(self._pending)

    def clear(self):
        """Forget in-flight requests. Running producers still complete for their current waiters."""
        self._pending.clear()
        logger.info("Request coalescer cleared")
