"""
Condition probes over a Playwright page

Every probe plugs into the WaitEngine and never raises for page errors. The
page belongs to a third-party site that is not fully observable, so
ambiguous conditions (network idle, dropdown population, validation
settling, layout stability) fail open: they report success rather than
stall the pipeline. Element presence is the exception and reports False
until the element really is in the requested state.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from playwright.async_api import Page

from ...config import AutomationConfig
from .dynamic_wait import WaitEngine
from .form_definitions import SUBMIT_SUCCESS_INDICATORS

ELEMENT_STATES = ("visible", "hidden", "attached", "detached")

DROPDOWN_OPTION_PATTERNS = [
    '{root} [role="option"]',
    '{root} .dropdown-option',
    '{root} .option',
    '{root} li',
    '{root} [data-value]',
    '[role="listbox"] [role="option"]',
    '.dropdown-menu .dropdown-item',
    '.select-options .option',
]

VALIDATION_ERROR_PATTERNS = [
    '{field} + .error',
    '{field} + .validation-error',
    '{field} ~ .error-message',
    '{field} ~ .field-error',
    '[data-field-error="{field}"]',
]


class PageProbes:
    """Boolean checks against a page, each bounded by the wait engine"""

    def __init__(self, page: Page, engine: WaitEngine, config: Optional[AutomationConfig] = None):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.page = page
        self.engine = engine
        self.config = config or engine.config

    async def _brief_pause(self, milliseconds: Optional[int] = None):
        delay = self.config.short_delay_ms if milliseconds is None else milliseconds
        await asyncio.sleep(delay / 1000.0)

    # ------------------------------------------------------------------ element

    async def is_in_state(self, selector: str, state: str = "visible") -> bool:
        """Single, non-waiting check of an element's state"""
        if state not in ELEMENT_STATES:
            raise ValueError(f"Unsupported element state: {state}")
        try:
            locator = self.page.locator(selector)
            count = await locator.count()
            if state == "attached":
                return count > 0
            if state == "detached":
                return count == 0
            if count == 0:
                return state == "hidden"
            visible = await locator.first.is_visible()
            return visible if state == "visible" else not visible
        except Exception as e:
            self.logger.debug(f"Element check failed for {selector}: {e}")
            return False

    async def element_state(self, selector: str, state: str = "visible", optional: bool = False,
                            max_timeout: Optional[float] = None) -> bool:
        """Wait until an element reaches the given state within the element budget"""
        budget = self.config.timeout_for("element", optional) if max_timeout is None else max_timeout
        return await self.engine.wait(
            lambda: self.is_in_state(selector, state),
            base_timeout=self.config.dynamic_wait_base_timeout,
            max_timeout=budget,
            multiplier=self.config.dynamic_wait_multiplier,
            operation=f"element {selector} {state}",
        )

    # --------------------------------------------------------------------- page

    async def _document_complete(self) -> bool:
        try:
            return await self.page.evaluate("document.readyState") == "complete"
        except Exception as e:
            self.logger.debug(f"readyState check failed: {e}")
            return False

    async def page_ready(self, optional: bool = False) -> bool:
        return await self.engine.wait(
            self._document_complete,
            max_timeout=self.config.timeout_for("dom", optional) + self.config.timeout_for("network", optional),
            operation="page ready",
        )

    async def _network_quiet(self) -> bool:
        try:
            await self.page.wait_for_load_state(
                "networkidle", timeout=self.config.dynamic_wait_base_timeout * 1000)
        except Exception as e:
            self.logger.debug(f"Network idle not observed, proceeding: {e}")
        return True

    async def network_idle(self, optional: bool = True) -> bool:
        return await self.engine.wait(
            self._network_quiet,
            max_timeout=self.config.timeout_for("network", optional),
            operation="network idle",
        )

    # ---------------------------------------------------------------------- dom

    async def _layout_settled(self, selector: str) -> bool:
        try:
            locator = self.page.locator(selector).first
            before = await locator.bounding_box()
            await self._brief_pause(self.config.brief_poll_interval_ms)
            after = await locator.bounding_box()
            if before is None or after is None:
                return False
            return before == after
        except Exception as e:
            self.logger.debug(f"DOM stability check failed for {selector}, proceeding: {e}")
            return True

    async def dom_stable(self, selector: str, optional: bool = True) -> bool:
        return await self.engine.wait(
            lambda: self._layout_settled(selector),
            max_timeout=self.config.timeout_for("dom", optional),
            operation=f"DOM stability of {selector}",
        )

    async def _options_present(self, root: str) -> bool:
        try:
            for pattern in DROPDOWN_OPTION_PATTERNS:
                options = self.page.locator(pattern.format(root=root))
                try:
                    if await options.count() > 0 and await options.first.is_visible():
                        return True
                except Exception:
                    continue
        except Exception as e:
            self.logger.debug(f"Dropdown option scan failed: {e}")
        # No recognisable options; give the UI a moment and move on
        await self._brief_pause()
        return True

    async def dropdown_populated(self, root: str = '[role="listbox"]') -> bool:
        cfg = self.config
        return await self.engine.wait(
            lambda: self._options_present(root),
            base_timeout=min(cfg.dynamic_wait_base_timeout, cfg.half_timeout_multiplier),
            max_timeout=min(cfg.dynamic_wait_max_timeout, 1.0),
            operation="dropdown options population",
        )

    async def _any_error_visible(self, field_selector: str) -> bool:
        for pattern in VALIDATION_ERROR_PATTERNS:
            try:
                if await self.page.locator(pattern.format(field=field_selector)).first.is_visible():
                    return True
            except Exception:
                continue
        return False

    async def _validation_settled(self, field_selector: str) -> bool:
        try:
            first = await self._any_error_visible(field_selector)
            await self._brief_pause()
            second = await self._any_error_visible(field_selector)
            return first == second or not first
        except Exception as e:
            self.logger.debug(f"Validation stability check failed, proceeding: {e}")
            return True

    async def validation_stable(self, field_selector: str = "form") -> bool:
        cfg = self.config
        return await self.engine.wait(
            lambda: self._validation_settled(field_selector),
            base_timeout=min(cfg.dynamic_wait_base_timeout, cfg.short_wait_timeout),
            max_timeout=min(cfg.dynamic_wait_max_timeout, cfg.short_wait_timeout * 2),
            operation="validation stability",
        )

    # --------------------------------------------------------------- submission

    async def success_marker_visible(self, indicators: Iterable[str] = SUBMIT_SUCCESS_INDICATORS) -> bool:
        for indicator in indicators:
            try:
                if await self.page.locator(f"text={indicator}").first.is_visible():
                    self.logger.debug(f"Success indicator visible: {indicator}")
                    return True
            except Exception:
                continue
        return False

    async def submission_confirmed(self, extra_check: Optional[Callable[[], Awaitable[bool]]] = None,
                                   max_timeout: Optional[float] = None) -> bool:
        """
        Wait for a post-submission success signal

        Network idle is awaited first on a best-effort basis, then either the
        extra check (usually "a matching success response arrived") or a
        visible success marker ends the wait.
        """
        await self.network_idle(optional=True)

        async def confirmed() -> bool:
            if extra_check is not None and await extra_check():
                return True
            return await self.success_marker_visible()

        budget = self.config.submit_verify_timeout if max_timeout is None else max_timeout
        return await self.engine.wait(confirmed, max_timeout=budget, operation="submission confirmation")
