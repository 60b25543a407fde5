"""
Abstract base class for submission backends

Defines the common interface that all submission backends must implement.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence

from ...models.form import Credentials, FormTarget
from ...models.results import SubmissionOutcome
from .abort import AbortSignal
from .progress import ProgressCallback


class SubmissionBackend(ABC):
    """Abstract base class for submission backends"""

    def __init__(self):
        """Initialize the backend"""
        self.on_log_message: Optional[Callable[[str], None]] = None

    def set_log_callback(self, callback: Optional[Callable[[str], None]]):
        """Set the logging callback function"""
        self.on_log_message = callback

    def _log(self, message: str):
        """Internal logging helper"""
        if self.on_log_message:
            self.on_log_message(message)

    @abstractmethod
    async def submit(self, rows: Sequence[Dict[str, Any]], credentials: Credentials, target: FormTarget,
                     progress_callback: Optional[ProgressCallback] = None,
                     abort_signal: Optional[AbortSignal] = None) -> SubmissionOutcome:
        """
        Submit one batch of rows into a form

        Args:
            rows: Label-keyed rows, all belonging to the target's form
            credentials: Login identity and secret
            target: Form to submit into
            progress_callback: Receives (percent, message) at coarse milestones
            abort_signal: Cooperative cancellation signal

        Returns:
            Outcome with submitted row indices and (index, message) errors.
            Never raises.
        """
        pass

    @abstractmethod
    async def cleanup(self):
        """Clean up backend resources"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this backend is available on the system"""
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Get the name of this backend"""
        pass
