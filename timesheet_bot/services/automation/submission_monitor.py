"""
Submit control detection and post-submission confirmation

Finds the form's submit button, clicks it and decides whether the
submission was accepted, from the network responses the page receives and
from success text shown in the page.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from playwright.async_api import Locator, Page

from ...config import AutomationConfig
from ...exceptions import ConfirmationError, SubmissionCancelledError, SubmitControlError
from ...models.form import FormTarget
from .form_definitions import SUBMIT_SUCCESS_INDICATORS, FormSelectors
from .probes import PageProbes

_SUBMISSION_ID = re.compile(r'"?(?:submissionId|submission_id|token)"?\s*[:=]\s*"?([A-Za-z0-9_-]+)"?')


def url_matches(url: str, patterns: Iterable[str]) -> bool:
    """Glob-lite matching: '*' is dropped and the rest must appear in the URL"""
    for pattern in patterns:
        needle = pattern.replace("*", "")
        if needle and needle in url:
            return True
    return False


def extract_submission_id(body: str) -> Optional[str]:
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("submissionId", "submission_id", "token"):
            value = data.get(key)
            if value:
                return str(value)
    match = _SUBMISSION_ID.search(body)
    return match.group(1) if match else None


@dataclass
class SuccessResponse:
    url: str
    status: int
    body: str = ""
    submission_id: Optional[str] = None


@dataclass
class SubmitAttempt:
    """Outcome of one successful submit"""
    selector: str
    responses: List[SuccessResponse] = field(default_factory=list)
    dom_confirmed: bool = False

    @property
    def submission_ids(self) -> List[str]:
        return [response.submission_id for response in self.responses if response.submission_id]


class ResponseTracker:
    """Collects page responses that look like an accepted submission"""

    def __init__(self, page: Page, target: FormTarget, config: AutomationConfig):
        self.page = page
        self.target = target
        self.config = config
        self.responses: List[SuccessResponse] = []
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._attached = False

    def start(self):
        self.responses = []
        if not self._attached:
            self.page.on("response", self._on_response)
            self._attached = True

    def stop(self):
        if self._attached:
            try:
                self.page.remove_listener("response", self._on_response)
            except Exception as e:
                self.logger.debug(f"Could not detach response listener: {e}")
            self._attached = False

    async def _on_response(self, response: Any):
        try:
            status = response.status
            url = response.url
        except Exception:
            return
        if not self.config.is_success_status(status):
            return
        if not url_matches(url, self.target.success_url_patterns):
            return
        try:
            body = await response.text()
        except Exception as e:
            self.logger.debug(f"Could not read response body from {url}: {e}")
            body = ""
        submission_id = extract_submission_id(body)
        self.logger.debug(f"Submission response {status} from {url} (id: {submission_id})")
        self.responses.append(SuccessResponse(url, status, body, submission_id))

    async def has_success(self) -> bool:
        return bool(self.responses)


class SubmissionMonitor:
    """Clicks the submit control and verifies the submission landed"""

    def __init__(self, page: Page, probes: PageProbes, target: FormTarget,
                 config: Optional[AutomationConfig] = None):
        self.page = page
        self.probes = probes
        self.target = target
        self.config = config or probes.config
        self.tracker = ResponseTracker(page, target, self.config)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # =================== Submit control ===================

    async def _usable(self, locator: Locator) -> bool:
        if not await locator.is_visible():
            return False
        if self.config.submit_button_require_enabled and not await locator.is_enabled():
            return False
        if self.config.enable_aria_disabled_check:
            aria_disabled = await locator.get_attribute("aria-disabled")
            if aria_disabled and aria_disabled.lower() == "true":
                return False
        return True

    async def _scan_submit_buttons(self) -> Optional[Tuple[Locator, str]]:
        for selector in FormSelectors.submit_buttons():
            try:
                locator = self.page.locator(selector)
                if await locator.count() == 0:
                    continue
                candidate = locator.first
                if await self._usable(candidate):
                    return candidate, selector
            except Exception as e:
                self.logger.debug(f"Submit selector {selector} check failed: {e}")
        return None

    async def find_submit_button(self) -> Tuple[Locator, str]:
        """
        Locate a visible, enabled submit button

        Raises:
            SubmitControlError: if none is usable within the detection timeout
        """
        found: List[Tuple[Locator, str]] = []

        async def probe() -> bool:
            result = await self._scan_submit_buttons()
            if result:
                found.append(result)
                return True
            return False

        timeout = self.config.submit_button_detection_timeout_ms / 1000.0
        if await self.probes.engine.wait(probe, max_timeout=timeout, operation="submit button detection"):
            return found[-1]
        raise SubmitControlError(f"Submit button not found or not enabled within {timeout:g}s")

    async def click_submit(self) -> str:
        """Find and click the submit control; returns the selector that worked"""
        button, selector = await self.find_submit_button()
        try:
            await button.click()
        except SubmissionCancelledError:
            raise
        except Exception as e:
            raise SubmitControlError(f"Failed to click submit button: {e}", selector)
        self.logger.debug(f"Clicked submit button: {selector}")
        return selector

    # =================== Confirmation ===================

    def validate_submission(self, dom_confirmed: bool, responses: List[SuccessResponse]) -> bool:
        if dom_confirmed:
            return True
        if not responses:
            return False
        if not self.config.enable_response_content_validation:
            return True
        for response in responses:
            body = response.body.lower()
            if any(indicator.lower() in body for indicator in SUBMIT_SUCCESS_INDICATORS):
                return True
        return any(response.submission_id for response in responses)

    async def confirm(self, selector: str) -> SubmitAttempt:
        """
        Wait for a success signal after the click

        Raises:
            ConfirmationError: no success signal, or the response did not look like a success
        """
        timeout = self.config.submit_verify_timeout
        observed = await self.probes.submission_confirmed(extra_check=self.tracker.has_success,
                                                         max_timeout=timeout)
        if not observed:
            raise ConfirmationError(f"No submission confirmation observed within {timeout:g}s",
                                    timeout=timeout, responses_seen=len(self.tracker.responses))

        responses = list(self.tracker.responses)
        dom_confirmed = False
        if not responses or self.config.enable_response_content_validation:
            dom_confirmed = await self.probes.success_marker_visible()
        if not self.validate_submission(dom_confirmed, responses):
            raise ConfirmationError("Submission response did not contain a success indicator",
                                    timeout=timeout, responses_seen=len(responses))
        return SubmitAttempt(selector=selector, responses=responses, dom_confirmed=dom_confirmed)

    async def submit_form(self) -> SubmitAttempt:
        """Click the submit control and confirm the submission"""
        self.tracker.start()
        try:
            selector = await self.click_submit()
            return await self.confirm(selector)
        finally:
            self.tracker.stop()
