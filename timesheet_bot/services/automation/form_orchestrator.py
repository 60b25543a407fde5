"""
Per-batch submission driver

Logs in once, then walks the rows of one batch in order: validates each
row's fields, fills the form, submits with up to two retries and records
the row as submitted or errored. All rows of a batch target the same form.
"""

import logging
import math
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import Page

from ...config import AutomationConfig
from ...exceptions import (
    AuthenticationError, AutomationError, ConfirmationError, ElementNotFoundError,
    FieldValidationError, FormInteractionError, SubmissionCancelledError, SubmitControlError
)
from ...models.entry import quarter_key, to_form_date
from ...models.form import Credentials, FormTarget, LoginStep
from ...models.results import SubmissionOutcome
from .abort import AbortSignal, check_aborted
from .dynamic_wait import WaitEngine
from .form_definitions import (
    FIELD_DEFINITIONS, FIELD_ORDER, REQUIRED_FIELDS, field_for_label, tool_locator_for
)
from .form_interactor import FormInteractor
from .login_state_machine import LoginStateMachine
from .probes import PageProbes
from .progress import ProgressChannel
from .submission_monitor import SubmissionMonitor

SUBMIT_RETRY_EXHAUSTED = "Form submission failed after 3 attempts (initial + Level 1 retry + Level 2 retry)"

_EMPTY_MARKERS = {"", "nan", "none"}


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip().lower() in _EMPTY_MARKERS


def format_field_value(key: str, value: Any) -> str:
    """String form of a value as typed into the page"""
    if key == "hours":
        try:
            return f"{float(value):g}"
        except (TypeError, ValueError):
            return str(value)
    if key == "date":
        return to_form_date(value) or str(value)
    return str(value).strip()


def build_fields(row: Dict[str, Any]) -> Dict[str, Any]:
    """Map a label-keyed row to field keys, dropping unknown labels and empty values"""
    fields: Dict[str, Any] = {}
    for label, value in row.items():
        definition = field_for_label(label)
        if definition is None or is_empty_value(value):
            continue
        fields[definition.key] = value
    return fields


def validate_row(fields: Dict[str, Any], quarter_id: Optional[str] = None):
    """
    Check a row before anything is typed into the page

    Required fields come first, then the quarter match, then each field's
    predicate in FIELD_ORDER.

    Raises:
        FieldValidationError: for the first problem found
    """
    missing = [key for key in REQUIRED_FIELDS if key not in fields]
    if missing:
        labels = ", ".join(FIELD_DEFINITIONS[key].label for key in missing)
        raise FieldValidationError(missing[0], f"Missing required fields: {labels}")

    if quarter_id:
        row_quarter = quarter_key(fields["date"])
        if row_quarter and row_quarter != quarter_id:
            raise FieldValidationError("date", f"Date {fields['date']} belongs to {row_quarter} but form "
                                               f"configured for different quarter ({quarter_id})", fields["date"])

    for key in FIELD_ORDER:
        definition = FIELD_DEFINITIONS[key]
        if key not in fields and definition.optional:
            continue
        value = fields.get(key, "")
        error = definition.validate(value)
        if error:
            raise FieldValidationError(key, error, value)


def precheck_row(fields: Dict[str, Any], quarter_id: Optional[str] = None) -> Optional[str]:
    """The first validation message for a row, or None when it is valid"""
    try:
        validate_row(fields, quarter_id)
    except FieldValidationError as e:
        return e.reason
    return None


class FormOrchestrator:
    """Submits one batch of rows into a single form target"""

    def __init__(self, page: Page, target: FormTarget, config: AutomationConfig,
                 progress: Optional[ProgressChannel] = None, abort_signal: Optional[AbortSignal] = None,
                 login_steps: Optional[Sequence[LoginStep]] = None, engine: Optional[WaitEngine] = None):
        self.page = page
        self.target = target
        self.config = config
        self.progress = progress or ProgressChannel()
        self.abort_signal = abort_signal
        self.login_steps = login_steps
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.engine = engine or WaitEngine(config, abort_signal)
        self.probes = PageProbes(page, self.engine, config)
        self.interactor = FormInteractor(page, self.probes)
        self.monitor = SubmissionMonitor(page, self.probes, target, config)

    async def run(self, rows: Sequence[Dict[str, Any]], credentials: Credentials) -> SubmissionOutcome:
        """
        Log in and submit every row

        Never raises for row-level problems; cancellation ends the run early
        with the rows processed so far and ``cancelled`` set.
        """
        outcome = SubmissionOutcome(ok=True)
        if not rows:
            return outcome

        total = len(rows)
        try:
            check_aborted(self.abort_signal, "Submission")
            self.progress.report(10, "Logging in")
            login = LoginStateMachine(self.page, self.probes, credentials, self.target, self.config,
                                      steps=self.login_steps, abort_signal=self.abort_signal)
            try:
                await login.run()
            except AuthenticationError as e:
                check_aborted(self.abort_signal, "Login")
                self.logger.error(f"Authentication failed for {credentials.identity}: {e.message}")
                return SubmissionOutcome.all_failed(total, e.message)
            self.progress.report(20, "Login complete")

            for index, row in enumerate(rows):
                check_aborted(self.abort_signal, "Submission")
                error = await self._process_row(index, row)
                if error is None:
                    outcome.submitted.append(index)
                    self.logger.info(f"Row {index + 1}/{total} submitted")
                else:
                    outcome.errors.append((index, error))
                    self.logger.warning(f"Row {index + 1}/{total} failed: {error}")
                self.progress.report(20 + math.floor(60 * (index + 1) / total),
                                     f"Processed row {index + 1} of {total}")
        except SubmissionCancelledError as e:
            outcome.cancelled = True
            self.logger.info(f"{e.message}; returning {len(outcome.submitted)} submitted row(s)")

        outcome.ok = not outcome.cancelled and not outcome.errors
        return outcome

    # =================== Row processing ===================

    async def _process_row(self, index: int, row: Dict[str, Any]) -> Optional[str]:
        """Returns None when the row was submitted, otherwise the error message"""
        fields = build_fields(row)
        try:
            validate_row(fields, self.target.quarter_id)
        except FieldValidationError as e:
            self.logger.debug(f"Row {index + 1} rejected before filling ({e.field}): {e.reason}")
            return e.reason

        try:
            await self._wait_for_form_ready()
            await self._fill_fields(fields)
            if not self.config.submit_form_after_filling:
                self.logger.info(f"Row {index + 1} filled; submission disabled")
                return None
            return await self._submit_with_retry(index, fields)
        except SubmissionCancelledError:
            raise
        except Exception as e:
            if self.abort_signal is not None and self.abort_signal.aborted:
                raise SubmissionCancelledError("Submission", self.abort_signal.reason)
            message = e.message if isinstance(e, AutomationError) else str(e)
            self.logger.error(f"Row {index + 1} raised: {message}", exc_info=not isinstance(e, AutomationError))
            await self._capture_failure(index)
            await self._recover(index)
            return message

    async def _wait_for_form_ready(self):
        await self.probes.network_idle(optional=True)
        await self.probes.element_state(FIELD_DEFINITIONS["project_code"].locator, "visible")

    async def _fill_fields(self, fields: Dict[str, Any]):
        for key in FIELD_ORDER:
            if key not in fields:
                continue
            definition = FIELD_DEFINITIONS[key]
            if not definition.inject_value:
                continue
            override = tool_locator_for(fields.get("project_code")) if key == "tool" else None
            await self.interactor.fill_field(definition, format_field_value(key, fields[key]), override)

    async def _submit_with_retry(self, index: int, fields: Dict[str, Any]) -> Optional[str]:
        """Initial attempt, Level 1 re-click, Level 2 re-fill and submit"""
        try:
            await self.monitor.submit_form()
            return None
        except (SubmitControlError, ConfirmationError) as e:
            last_error = e.reason
            self.logger.warning(f"Row {index + 1}: initial submission failed: {last_error}")

        await self.engine.pause(self.config.submit_click_retry_delay_s, "Submission")
        try:
            await self.monitor.submit_form()
            self.logger.info(f"Row {index + 1}: Level 1 retry succeeded")
            return None
        except (SubmitControlError, ConfirmationError) as e:
            last_error = e.reason
            self.logger.warning(f"Row {index + 1}: Level 1 retry failed: {last_error}")

        await self.engine.pause(self.config.submit_retry_delay_s, "Submission")
        try:
            await self.probes.dom_stable("form")
            await self._fill_fields(fields)
            await self.monitor.submit_form()
            self.logger.info(f"Row {index + 1}: Level 2 retry succeeded")
            return None
        except (SubmitControlError, ConfirmationError) as e:
            last_error = e.reason
        except (ElementNotFoundError, FormInteractionError) as e:
            last_error = e.message
        self.logger.warning(f"Row {index + 1}: Level 2 retry failed: {last_error}")
        return f"{SUBMIT_RETRY_EXHAUSTED}: {last_error}"

    async def _capture_failure(self, index: int):
        if not self.config.enable_failure_screenshots:
            return
        directory = Path(self.config.screenshot_dir)
        path = directory / f"row_{index + 1}_{time.strftime('%Y%m%d_%H%M%S')}.png"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
            self.logger.info(f"Saved failure screenshot: {path}")
        except Exception as e:
            self.logger.warning(f"Could not save failure screenshot: {e}")

    async def _recover(self, index: int):
        self.logger.info(f"Attempting recovery after row {index + 1}")
        try:
            await self.page.goto(self.target.base_url, wait_until="domcontentloaded",
                                 timeout=self.config.global_timeout * 1000)
            await self.probes.page_ready(optional=True)
        except SubmissionCancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Could not recover from page error: {e}")
