"""
Deadline and cancellation handling for the pipeline's external calls
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from core.exceptions import RequestCancelledError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationScope:
    """
    Shared deadline + cancel signal for one request.

    The deadline is fixed when the scope is created, so every awaited call gets
    whatever time is left. Setting `cancel_event` aborts the call in flight.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.cancel_event = cancel_event
        self._deadline: Optional[float] = None
        if timeout:
            self._deadline = asyncio.get_running_loop().time() + timeout

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one"""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def raise_if_cancelled(self, operation: str = "request") -> None:
        if self.cancelled:
            raise RequestCancelledError(f"{operation} cancelled by caller")

    async def run(self, awaitable: Awaitable[T], operation: str) -> T:
        """
        Await `awaitable` within the scope.

        Raises:
            RequestCancelledError: cancel_event was set before or during the call
            UpstreamTimeoutError: the deadline elapsed first
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            raise RequestCancelledError(f"{operation} cancelled by caller")

        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            task.cancel()
            raise UpstreamTimeoutError(f"{operation} exceeded the request deadline")

        waiters = {task}
        cancel_waiter = None
        if self.cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(self.cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        if cancel_waiter is not None and cancel_waiter in done:
            logger.info(f"{operation} cancelled by caller")
            raise RequestCancelledError(f"{operation} cancelled by caller")

        logger.warning(f"{operation} exceeded the request deadline")
        raise UpstreamTimeoutError(f"{operation} exceeded the request deadline")
