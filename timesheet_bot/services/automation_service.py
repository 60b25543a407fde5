"""
Automation service coordinator

Selects the active submission backend and runs quarter-routed submissions
through it. The service never raises from submit_entries(): every failure
ends in a structured AggregateResult.
"""

import logging
from typing import Callable, List, Literal, Optional, Sequence

from ..config import AutomationConfig
from ..exceptions import SubmissionCancelledError
from ..models.entry import TimesheetEntry
from ..models.form import Credentials
from ..models.results import AggregateResult
from .quarter_router import QuarterRegistry, process_entries_by_quarter
from .automation.abort import AbortSignal, create_cancelled_result
from .automation.base_backend import SubmissionBackend
from .automation.mock_backend import MockBackend
from .automation.playwright_backend import PlaywrightBackend
from .automation.progress import ProgressCallback

# Type alias for submission backend
AutomationBackendType = Literal["playwright", "mock"]


class BackendFactory:
    """Factory for creating submission backends"""

    @staticmethod
    def create_backend(backend_type: AutomationBackendType,
                       config: Optional[AutomationConfig] = None) -> SubmissionBackend:
        """Create a submission backend instance"""
        if backend_type == "playwright":
            return PlaywrightBackend(config)
        elif backend_type == "mock":
            return MockBackend()
        else:
            raise ValueError(f"Unsupported backend type: {backend_type}")

    @staticmethod
    def get_available_backends() -> List[AutomationBackendType]:
        """Get list of available backends"""
        available: List[AutomationBackendType] = []
        if PlaywrightBackend(AutomationConfig()).is_available():
            available.append("playwright")
        available.append("mock")
        return available


class CallbackManager:
    """Manages callbacks for UI updates"""

    def __init__(self):
        self.on_progress: Optional[ProgressCallback] = None
        self.on_batch_complete: Optional[Callable[[AggregateResult], None]] = None
        self.on_log_message: Optional[Callable[[str], None]] = None

    def set_callbacks(self,
                      on_progress: Optional[ProgressCallback] = None,
                      on_batch_complete: Optional[Callable[[AggregateResult], None]] = None,
                      on_log_message: Optional[Callable[[str], None]] = None):
        """Set callback functions for UI updates"""
        self.on_progress = on_progress
        self.on_batch_complete = on_batch_complete
        self.on_log_message = on_log_message


class AutomationService:
    """
    Automation service coordinator

    Owns the backend lifecycle and delegates the actual browser work to the
    selected backend through the quarter router.
    """

    def __init__(self, backend_type: AutomationBackendType = "playwright",
                 config: Optional[AutomationConfig] = None,
                 registry: Optional[QuarterRegistry] = None):
        """Initialize automation service with specified backend"""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config or AutomationConfig.from_env()
        self.registry = registry or QuarterRegistry()

        self.is_running = False
        self._backend_type = backend_type
        self._backend: Optional[SubmissionBackend] = None
        self._callbacks = CallbackManager()
        self.error_log: List[dict] = []

        self._initialize_backend()

    def _initialize_backend(self):
        """Initialize the submission backend"""
        try:
            self._backend = BackendFactory.create_backend(self._backend_type, self.config)
            self._backend.set_log_callback(self._log_message)
            self._log_message(f"Backend initialized: {self._backend_type}")
        except Exception as e:
            error_msg = f"Failed to initialize {self._backend_type} backend: {str(e)}"
            self.logger.error(error_msg)
            raise

    def _log_message(self, message: str):
        """Internal logging and callback"""
        self.logger.info(message)
        if self._callbacks.on_log_message:
            self._callbacks.on_log_message(message)

    # Backend management methods
    @property
    def backend(self) -> SubmissionBackend:
        return self._backend

    def get_backend_name(self) -> str:
        return self._backend.get_backend_name() if self._backend else "none"

    def use_backend(self, backend: SubmissionBackend):
        """Install an already constructed backend"""
        self._backend = backend
        self._backend_type = backend.get_backend_name()
        self._backend.set_log_callback(self._log_message)

    def set_backend(self, backend_type: AutomationBackendType):
        """Switch to a different backend type"""
        if self.is_running:
            raise RuntimeError("Cannot change backend while a submission is running")
        self._backend_type = backend_type
        self._initialize_backend()

    def get_available_backends(self) -> List[AutomationBackendType]:
        return BackendFactory.get_available_backends()

    def set_callbacks(self,
                      on_progress: Optional[ProgressCallback] = None,
                      on_batch_complete: Optional[Callable[[AggregateResult], None]] = None,
                      on_log_message: Optional[Callable[[str], None]] = None):
        """Set callback functions for UI updates"""
        self._callbacks.set_callbacks(on_progress, on_batch_complete, on_log_message)

    # Submission
    async def submit_entries(self, entries: Sequence[TimesheetEntry], credentials: Credentials,
                             progress_callback: Optional[ProgressCallback] = None,
                             abort_signal: Optional[AbortSignal] = None,
                             use_mock_website: bool = False) -> AggregateResult:
        """
        Submit entries through the active backend, routed by quarter

        Returns:
            The aggregate result; never raises
        """
        if not entries:
            return AggregateResult(ok=True)

        self.is_running = True
        progress = progress_callback or self._callbacks.on_progress
        self._log_message(f"Starting submission of {len(entries)} entries via {self.get_backend_name()}")
        try:
            result = await process_entries_by_quarter(
                entries,
                to_bot_row=TimesheetEntry.to_bot_row,
                run_bot=self._backend.submit,
                email=credentials.identity,
                password=credentials.secret,
                progress_callback=progress,
                abort_signal=abort_signal,
                use_mock_website=use_mock_website,
                registry=self.registry,
                config=self.config,
            )
        except SubmissionCancelledError:
            result = create_cancelled_result(len(entries))
        except Exception as e:
            self.logger.error(f"Submission failed unexpectedly: {e}", exc_info=True)
            result = AggregateResult(ok=False, total_processed=len(entries), error=str(e))
        finally:
            self.is_running = False

        if result.error:
            self.error_log.append({
                "error": result.error,
                "submitted": result.success_count,
                "removed": result.removed_count,
                "cancelled": result.cancelled,
            })
        self._log_message(f"Submission finished: {result.success_count} submitted, "
                          f"{result.removed_count} removed")
        if self._callbacks.on_batch_complete:
            self._callbacks.on_batch_complete(result)
        return result

    def get_error_log(self) -> List[dict]:
        return list(self.error_log)

    def clear_error_log(self):
        self.error_log.clear()

    async def cleanup(self):
        """Clean up backend resources"""
        if self._backend:
            await self._backend.cleanup()
