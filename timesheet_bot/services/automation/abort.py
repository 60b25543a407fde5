"""
Cooperative cancellation

The caller owns an AbortController and hands its signal to the automation
code. The signal is read-only from the automation side: it is polled at
suspension points via check_aborted(), and listeners registered through
setup_abort_handler() tear resources down the moment abort() is called.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from ...exceptions import SubmissionCancelledError
from ...models.results import CANCELLED_MESSAGE, AggregateResult

logger = logging.getLogger(__name__)

CloseCallback = Callable[[], Union[None, Awaitable[None]]]


class AbortSignal:
    """Read-only view of a cancellation request"""

    def __init__(self):
        self._aborted = False
        self._reason: Optional[str] = None
        self._listeners: List[Callable[[], None]] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a one-shot listener; returns a function that unregisters it"""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _fire(self, reason: Optional[str]):
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.warning(f"Abort listener failed: {e}")


class AbortController:
    """Owner side of an AbortSignal"""

    def __init__(self):
        self.signal = AbortSignal()

    def abort(self, reason: Optional[str] = None):
        self.signal._fire(reason or "Aborted by caller")


def check_aborted(signal: Optional[AbortSignal], context: str = "Operation"):
    """Raise SubmissionCancelledError when the signal has fired"""
    if signal is not None and signal.aborted:
        raise SubmissionCancelledError(context, signal.reason)


def setup_abort_handler(signal: Optional[AbortSignal], close_resource: CloseCallback,
                        resource_name: str = "resource") -> Optional[Callable[[], None]]:
    """
    Close a resource immediately when the signal fires

    Async close callbacks are scheduled on the running event loop.

    Returns:
        A function removing the handler, or None when there is no signal
    """
    if signal is None:
        return None

    def on_abort():
        logger.info(f"Abort signal received, closing resource immediately ({resource_name})")
        result = close_resource()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            task.add_done_callback(_log_close_failure(resource_name))

    if signal.aborted:
        on_abort()
        return None
    return signal.add_listener(on_abort)


def _log_close_failure(resource_name: str):
    def callback(task: "asyncio.Future"):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Error closing {resource_name} after abort: {error}")
    return callback


def create_cancelled_result(total_processed: int = 0) -> AggregateResult:
    return AggregateResult(
        ok=False,
        submitted_ids=[],
        removed_ids=[],
        total_processed=total_processed,
        error=CANCELLED_MESSAGE,
        cancelled=True,
    )
