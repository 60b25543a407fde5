"""
Playwright backend implementation

Runs the form orchestrator against a real browser. One browser session is
opened per batch and closed on every exit path; when an abort signal is
supplied the session is also closed the moment it fires.
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence

from ...config import AutomationConfig
from ...exceptions import AutomationError, BrowserInitializationError, SubmissionCancelledError
from ...models.form import Credentials, FormTarget
from ...models.results import SubmissionOutcome
from .abort import AbortSignal, check_aborted, setup_abort_handler
from .base_backend import SubmissionBackend
from .browser_session import BrowserSession
from .form_orchestrator import FormOrchestrator
from .progress import ProgressCallback, ProgressChannel


class PlaywrightBackend(SubmissionBackend):
    """Playwright submission backend"""

    def __init__(self, config: Optional[AutomationConfig] = None,
                 session_factory: Callable[[AutomationConfig], BrowserSession] = BrowserSession):
        super().__init__()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.config = config or AutomationConfig.from_env()
        self._session_factory = session_factory
        self._session: Optional[BrowserSession] = None

    def get_backend_name(self) -> str:
        return "playwright"

    def is_available(self) -> bool:
        """Check if Playwright is importable"""
        try:
            import playwright  # noqa: F401
            return True
        except ImportError:
            return False

    async def submit(self, rows: Sequence[Dict[str, Any]], credentials: Credentials, target: FormTarget,
                     progress_callback: Optional[ProgressCallback] = None,
                     abort_signal: Optional[AbortSignal] = None) -> SubmissionOutcome:
        if not rows:
            return SubmissionOutcome(ok=True)

        try:
            check_aborted(abort_signal, "Submission")
        except SubmissionCancelledError:
            return SubmissionOutcome(ok=False, cancelled=True)

        progress = ProgressChannel(progress_callback)
        session = self._session_factory(self.config)
        self._session = session
        remove_abort_handler = None
        self._log(f"Submitting {len(rows)} row(s) to form {target.form_id}")

        try:
            page = await session.start()
            remove_abort_handler = setup_abort_handler(abort_signal, session.close, "browser session")
            orchestrator = FormOrchestrator(page, target, self.config, progress, abort_signal)
            outcome = await orchestrator.run(rows, credentials)
        except BrowserInitializationError as e:
            self.logger.error(f"Browser failed to start: {e}")
            outcome = SubmissionOutcome.all_failed(len(rows), e.message)
        except SubmissionCancelledError:
            outcome = SubmissionOutcome(ok=False, cancelled=True)
        except AutomationError as e:
            self.logger.error(f"Submission failed: {e}", exc_info=True)
            outcome = SubmissionOutcome.all_failed(len(rows), e.message)
        except Exception as e:
            self.logger.error(f"Unexpected error: {e}", exc_info=True)
            outcome = SubmissionOutcome.all_failed(len(rows), f"Unexpected error: {e}")
        finally:
            if remove_abort_handler:
                remove_abort_handler()
            await session.close()
            self._session = None

        if outcome.cancelled:
            self._log("Submission cancelled")
        else:
            progress.report(100, "Submission complete")
            self._log(f"Batch finished: {len(outcome.submitted)} submitted, {len(outcome.errors)} failed")
        return outcome

    async def cleanup(self):
        """Close a session left open by an interrupted submit"""
        if self._session is not None:
            await self._session.close()
            self._session = None
