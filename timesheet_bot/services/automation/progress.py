"""
Progress reporting channel

The orchestrator writes coarse milestones; the caller either drains the
queued events or receives them through a callback. Callback failures are
logged and never reach the orchestrator.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True)
class ProgressEvent:
    percent: int
    message: str


class ProgressChannel:
    """Message-passing progress reporter"""

    def __init__(self, callback: Optional[ProgressCallback] = None, maxlen: int = 1000):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._callback = callback
        self._events: Deque[ProgressEvent] = deque(maxlen=maxlen)

    def report(self, percent: float, message: str):
        percent = max(0, min(100, int(percent)))
        event = ProgressEvent(percent, message)
        self._events.append(event)
        self.logger.debug(f"Progress {percent}%: {message}")
        if self._callback is None:
            return
        try:
            self._callback(percent, message)
        except Exception as e:
            self.logger.warning(f"Progress callback raised, ignoring: {e}")

    def drain(self) -> List[ProgressEvent]:
        """Return and clear all queued events"""
        events = list(self._events)
        self._events.clear()
        return events

    def scaled(self, start: float, end: float) -> "ScaledProgress":
        """A view mapping 0-100 onto the [start, end] slice of this channel"""
        return ScaledProgress(self, start, end)


class ScaledProgress:
    """Maps a nested stage's 0-100 progress into a slice of the parent channel"""

    def __init__(self, parent: ProgressChannel, start: float, end: float):
        self.parent = parent
        self.start = start
        self.end = end

    def __call__(self, percent: int, message: str):
        self.parent.report(self.start + (self.end - self.start) * percent / 100.0, message)
