"""Cancellation and timeouts for user-initiated operations."""

import asyncio
import logging
from typing import Awaitable, TypeVar

from notegraph.exceptions import OperationCancelledError, OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationRegistry:
    """Tracks running operations by ID so callers can cancel them.

    Every operation runs under a timeout: ``default_timeout`` for light work,
    ``long_timeout`` for heavier operations such as suggestion generation.
    """

    def __init__(self, default_timeout: float = 60, long_timeout: float = 120) -> None:
        self.default_timeout = default_timeout
        self.long_timeout = long_timeout
        self._operations: dict[str, asyncio.Future] = {}
        self._cancelled: set[str] = set()

    async def run(
        self, operation_id: str | None, operation: Awaitable[T], *, long: bool = False
    ) -> T:
        """Run an operation, registered under ``operation_id`` when one is given.

        Args:
            operation_id: Key the caller may later pass to cancel(), or None
            operation: Coroutine to run
            long: Use the long timeout tier

        Returns:
            The operation's result

        Raises:
            OperationCancelledError: cancel() was called for this operation
            OperationTimeoutError: the operation exceeded its timeout
        """
        if operation_id is not None and operation_id in self._operations:
            if asyncio.iscoroutine(operation):
                operation.close()
            raise ValueError(f"Operation {operation_id} is already running")

        timeout = self.long_timeout if long else self.default_timeout
        task = asyncio.ensure_future(operation)
        if operation_id is not None:
            self._operations[operation_id] = task

        try:
            return await asyncio.wait_for(task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Operation {operation_id} timed out after {timeout}s")
            raise OperationTimeoutError(operation_id or "<anonymous>", timeout) from None
        except asyncio.CancelledError:
            if operation_id is not None and operation_id in self._cancelled:
                raise OperationCancelledError(operation_id) from None
            raise
        finally:
            if operation_id is not None:
                self._operations.pop(operation_id, None)
                self._cancelled.discard(operation_id)

    def cancel(self, operation_id: str) -> bool:
        """Abort a running operation, returning False if nothing is registered under the ID."""
        task = self._operations.get(operation_id)
        if task is None or task.done():
            return False
        self._cancelled.add(operation_id)
        task.cancel()
        logger.info(f"Cancelled operation {operation_id}")
        return True

    def active(self) -> list[str]:
        return [op_id for op_id, task in self._operations.items() if not task.done()]
