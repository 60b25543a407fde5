"""
End-to-end submission workflow

Reads pending entries from the repository, submits them through the
automation service and writes the outcome back. Only one run may be in
flight per workflow; a second concurrent call is rejected.
"""

import logging
from typing import Optional

from ..models.results import AggregateResult
from .automation.abort import AbortSignal
from .automation.progress import ProgressCallback
from .automation_service import AutomationService
from .credentials import SMARTSHEET_SERVICE, CredentialProvider
from .repository import RowRepository

ALREADY_RUNNING_MESSAGE = "A submission is already in progress"
MISSING_CREDENTIALS_MESSAGE = "SmartSheet credentials not found. Please add your credentials to submit timesheets."


class SubmissionWorkflow:
    """Repository -> automation service -> repository"""

    def __init__(self, repository: RowRepository, credentials: CredentialProvider, service: AutomationService):
        self.repository = repository
        self.credentials = credentials
        self.service = service
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, progress_callback: Optional[ProgressCallback] = None,
                  abort_signal: Optional[AbortSignal] = None,
                  use_mock_website: bool = False) -> AggregateResult:
        """
        Submit every pending entry

        Submitted ids are marked submitted and failed ids go back to pending.
        Cancelled runs only record what was actually submitted. Never raises.
        """
        if self._running:
            self.logger.warning("Rejected submission request: another submission is running")
            return AggregateResult(ok=False, error=ALREADY_RUNNING_MESSAGE)

        self._running = True
        try:
            return await self._run(progress_callback, abort_signal, use_mock_website)
        except Exception as e:
            self.logger.error(f"Submission workflow failed: {e}", exc_info=True)
            return AggregateResult(ok=False, error=str(e))
        finally:
            self._running = False

    async def _run(self, progress_callback, abort_signal, use_mock_website) -> AggregateResult:
        pending = self.repository.get_pending()
        if not pending:
            self.logger.info("No pending entries to submit")
            return AggregateResult(ok=True)

        credentials = self.credentials.get(SMARTSHEET_SERVICE)
        if credentials is None:
            self.logger.error("Submission aborted: credentials not found")
            return AggregateResult(ok=False, total_processed=0, error=MISSING_CREDENTIALS_MESSAGE)

        ids = [entry.id for entry in pending if entry.id is not None]
        self.repository.mark_in_progress(ids)
        self.logger.info(f"Submitting {len(pending)} pending entries")
        try:
            result = await self.service.submit_entries(
                pending, credentials,
                progress_callback=progress_callback,
                abort_signal=abort_signal,
                use_mock_website=use_mock_website,
            )
            self.repository.mark_submitted(result.submitted_ids)
            if result.cancelled:
                self.logger.info("Submission cancelled; unsubmitted entries stay pending")
            else:
                self.repository.remove_failed(result.removed_ids)
            return result
        finally:
            reset = self.repository.reset_in_progress()
            if reset:
                self.logger.info(f"Reset {reset} entries still marked in progress")
