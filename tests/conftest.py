"""
Shared fixtures: a fast configuration and an in-memory stand-in for a
Playwright page that simulates the timesheet form
"""

import inspect
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from timesheet_bot.config import AutomationConfig
from timesheet_bot.services.automation.form_definitions import (
    FIELD_DEFINITIONS, LOGIN_STEPS, FormSelectors
)

FORM_ID = "0199fabee6497e60abb6030c48d84585"


class FakeResponse:
    def __init__(self, url: str, status: int = 200, body: str = ""):
        self.url = url
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    async def count(self) -> int:
        return 1 if self.selector in self.page.visible or self.selector in self.page.attached else 0

    async def is_visible(self) -> bool:
        return self.selector in self.page.visible

    async def is_enabled(self) -> bool:
        return self.selector not in self.page.disabled

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.page.attributes.get(self.selector, {}).get(name)

    async def fill(self, value: str):
        if self.selector in self.page.fill_errors:
            raise RuntimeError(f"cannot fill {self.selector}")
        self.page.fills.append((self.selector, value))

    async def click(self):
        self.page.clicks.append(self.selector)
        handler = self.page.click_handlers.get(self.selector)
        if handler is not None:
            result = handler()
            if inspect.isawaitable(result):
                await result

    async def press(self, key: str):
        self.page.presses.append((self.selector, key))

    async def bounding_box(self):
        if self.selector not in self.page.visible:
            return None
        return {"x": 0, "y": 0, "width": 100, "height": 20}


class FakePage:
    """Minimal async page: selectors in `visible` exist and are shown"""

    def __init__(self, visible: Optional[Set[str]] = None):
        self.visible: Set[str] = set(visible or ())
        self.attached: Set[str] = set()
        self.disabled: Set[str] = set()
        self.attributes: Dict[str, Dict[str, str]] = {}
        self.fill_errors: Set[str] = set()
        self.click_handlers: Dict[str, object] = {}
        self.fills: List[tuple] = []
        self.clicks: List[str] = []
        self.presses: List[tuple] = []
        self.gotos: List[str] = []
        self.screenshots: List[str] = []
        self.goto_error: Optional[Exception] = None
        self.listeners: Dict[str, list] = {}
        self.url = "about:blank"

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def goto(self, url: str, **kwargs):
        self.gotos.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url

    async def evaluate(self, expression: str):
        return "complete"

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None):
        return None

    async def screenshot(self, path: str, **kwargs):
        self.screenshots.append(path)

    def on(self, event: str, handler):
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler):
        self.listeners.get(event, []).remove(handler)

    async def emit(self, event: str, payload):
        for handler in list(self.listeners.get(event, [])):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    def submit_clicks(self) -> List[str]:
        buttons = set(FormSelectors.submit_buttons())
        return [selector for selector in self.clicks if selector in buttons]


def build_form_page(form_id: str = FORM_ID, accept: bool = True, login_ok: bool = True,
                    response_body: str = '{"submissionId": "sub-123"}') -> FakePage:
    """A page where login works and submitting returns a success response"""
    visible = {step.locator for step in LOGIN_STEPS}
    visible |= {definition.locator for definition in FIELD_DEFINITIONS.values()}
    visible.add(FormSelectors.SUBMIT_BUTTON_PRIMARY)
    if not login_ok:
        visible.discard("#i0116")
    page = FakePage(visible)

    async def on_submit():
        if accept:
            await page.emit("response", FakeResponse(
                f"https://forms.smartsheet.com/api/submit/{form_id}", 200, response_body))

    page.click_handlers[FormSelectors.SUBMIT_BUTTON_PRIMARY] = on_submit
    return page


class FakeSession:
    """Stands in for BrowserSession, handing out a prepared page"""

    def __init__(self, page: FakePage):
        self._page = page
        self.started = False
        self.close_count = 0

    @property
    def page(self):
        return self._page

    async def start(self):
        self.started = True
        return self._page

    async def close(self):
        self.close_count += 1


@pytest.fixture
def fast_config() -> AutomationConfig:
    return AutomationConfig(
        dynamic_wait_base_timeout=0.001,
        dynamic_wait_max_timeout=0.05,
        global_timeout=0.05,
        short_wait_timeout=0.001,
        brief_poll_interval_ms=0,
        short_delay_ms=0,
        medium_delay_ms=0,
        login_backoff_sec=0,
        submit_click_retry_delay_s=0,
        submit_retry_delay_s=0,
        submit_button_detection_timeout_ms=50,
        submit_verify_timeout_ms=50,
    )


@pytest.fixture
def form_page_factory():
    return build_form_page


@pytest.fixture
def fake_page_class():
    return FakePage


@pytest.fixture
def fake_session_class():
    return FakeSession


@pytest.fixture
def fake_response_class():
    return FakeResponse
