"""
Adaptive wait engine

The single timing primitive used by every higher-level wait. A probe is any
callable (sync or async) returning a truthy value once its condition holds.
The engine polls it with exponentially growing sleeps, capped by the
remaining budget, until it succeeds or the budget is spent.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Union

from ...config import AutomationConfig
from .abort import AbortSignal, check_aborted

Probe = Callable[[], Union[Any, Awaitable[Any]]]


class WaitEngine:
    """Exponential-backoff poller bounded by a per-call budget"""

    def __init__(self, config: AutomationConfig, abort_signal: Optional[AbortSignal] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config
        self.abort_signal = abort_signal
        self._sleep = sleep
        self._clock = clock

    async def evaluate(self, probe: Probe) -> bool:
        """Evaluate a probe once; exceptions count as 'not yet satisfied'"""
        try:
            result = probe()
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception as e:
            self.logger.debug(f"Probe raised, treating as unsatisfied: {e}")
            return False

    async def wait(self, probe: Probe, base_timeout: Optional[float] = None,
                   max_timeout: Optional[float] = None, multiplier: Optional[float] = None,
                   operation: str = "condition") -> bool:
        """
        Poll a probe until it succeeds or the budget runs out

        Args:
            probe: Condition to poll
            base_timeout: First sleep in seconds
            max_timeout: Total budget in seconds
            multiplier: Growth factor applied to the sleep after each miss
            operation: Name used in logs and cancellation messages

        Returns:
            True if the probe succeeded within the budget

        Raises:
            SubmissionCancelledError: if the abort signal fires while waiting
        """
        cfg = self.config
        base = cfg.dynamic_wait_base_timeout if base_timeout is None else base_timeout
        budget = cfg.dynamic_wait_max_timeout if max_timeout is None else max_timeout
        growth = cfg.dynamic_wait_multiplier if multiplier is None else multiplier

        check_aborted(self.abort_signal, operation)

        if not cfg.dynamic_wait_enabled:
            await self._sleep(base)
            check_aborted(self.abort_signal, operation)
            return await self.evaluate(probe)

        start = self._clock()
        current = base
        attempts = 0
        while self._clock() - start < budget:
            check_aborted(self.abort_signal, operation)
            attempts += 1
            if await self.evaluate(probe):
                if attempts > 1:
                    self.logger.debug(f"{operation} satisfied after {attempts} checks")
                return True
            remaining = budget - (self._clock() - start)
            if remaining <= 0:
                break
            await self._sleep(min(current, remaining))
            current = min(current * growth, max(0.0, budget - (self._clock() - start)))

        check_aborted(self.abort_signal, operation)
        self.logger.debug(f"{operation} not satisfied within {budget:.2f}s ({attempts} checks)")
        return False

    async def wait_for_category(self, probe: Probe, category: str, optional: bool = False,
                                operation: str = "condition") -> bool:
        """Wait using the configured element/dom/network budget"""
        return await self.wait(
            probe,
            base_timeout=self.config.dynamic_wait_base_timeout,
            max_timeout=self.config.timeout_for(category, optional),
            multiplier=self.config.dynamic_wait_multiplier,
            operation=operation,
        )

    async def pause(self, seconds: float, operation: str = "pause"):
        """Fixed sleep that still honours cancellation"""
        check_aborted(self.abort_signal, operation)
        if seconds > 0:
            await self._sleep(seconds)
        check_aborted(self.abort_signal, operation)
