"""
Mock backend for development and tests

Applies the same row prechecks as the real orchestrator but never opens a
browser. Failures can be forced for every row or injected at random.
"""

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from ...models.form import Credentials, FormTarget
from ...models.results import SubmissionOutcome
from .abort import AbortSignal
from .base_backend import SubmissionBackend
from .form_orchestrator import build_fields, precheck_row
from .progress import ProgressCallback, ProgressChannel

MOCK_FAILURE_MESSAGE = "Mock submission failure"


class MockBackend(SubmissionBackend):
    """In-process backend that records submissions instead of sending them"""

    def __init__(self, delay: float = 0.5, failure_rate: float = 0.0, should_fail: bool = False,
                 rng: Optional[random.Random] = None):
        super().__init__()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.delay = delay
        self.failure_rate = failure_rate
        self.should_fail = should_fail
        self._rng = rng or random.Random()
        self.submitted_rows: List[Dict[str, Any]] = []
        self.calls: List[FormTarget] = []

    def get_backend_name(self) -> str:
        return "mock"

    def is_available(self) -> bool:
        return True

    def set_should_fail(self, should_fail: bool):
        self.should_fail = should_fail

    def set_failure_rate(self, rate: float):
        """Set random failure rate (0.0 to 1.0)"""
        self.failure_rate = max(0.0, min(1.0, rate))

    def reset(self):
        self.submitted_rows.clear()
        self.calls.clear()

    async def submit(self, rows: Sequence[Dict[str, Any]], credentials: Credentials, target: FormTarget,
                     progress_callback: Optional[ProgressCallback] = None,
                     abort_signal: Optional[AbortSignal] = None) -> SubmissionOutcome:
        self.calls.append(target)
        if not rows:
            return SubmissionOutcome(ok=True)
        progress = ProgressChannel(progress_callback)
        outcome = SubmissionOutcome(ok=True)
        self._log(f"[mock] Submitting {len(rows)} row(s) to {target.base_url}")

        for index, row in enumerate(rows):
            if abort_signal is not None and abort_signal.aborted:
                outcome.cancelled = True
                break
            if self.delay:
                await asyncio.sleep(self.delay)

            error = precheck_row(build_fields(row), target.quarter_id)
            if error is None and (self.should_fail or self._rng.random() < self.failure_rate):
                error = MOCK_FAILURE_MESSAGE
            if error:
                outcome.errors.append((index, error))
            else:
                outcome.submitted.append(index)
                self.submitted_rows.append(dict(row))
            progress.report(20 + 60 * (index + 1) // len(rows), f"Processed row {index + 1} of {len(rows)}")

        outcome.ok = not outcome.cancelled and not outcome.errors
        return outcome

    async def cleanup(self):
        pass
