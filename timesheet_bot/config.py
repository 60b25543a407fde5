"""
Automation configuration

All timing constants and feature switches live in one immutable value that is
built once (usually from the process environment) and handed to the wait
engine, probes and orchestrator at construction time.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

WAIT_CATEGORIES = ("element", "dom", "network")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning(f"Ignoring unrecognised boolean for {name}: {raw!r}")
    return default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring unparseable number for {name}: {raw!r}")
        return default


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(float(raw))
    except ValueError:
        logger.warning(f"Ignoring unparseable integer for {name}: {raw!r}")
        return default


def _env_str(environ: Mapping[str, str], name: str, default: str) -> str:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


@dataclass(frozen=True)
class AutomationConfig:
    """Immutable automation settings with documented defaults"""

    # Adaptive wait engine
    dynamic_wait_enabled: bool = True
    dynamic_wait_base_timeout: float = 0.2
    dynamic_wait_max_timeout: float = 10.0
    dynamic_wait_multiplier: float = 1.2
    global_timeout: float = 10.0

    # Per-category budgets: multiplier of global_timeout, capped by a ceiling
    optional_multipliers: Mapping[str, float] = field(
        default_factory=lambda: {"element": 0.3, "dom": 0.1, "network": 0.2})
    required_multipliers: Mapping[str, float] = field(
        default_factory=lambda: {"element": 0.6, "dom": 0.15, "network": 0.25})
    max_timeouts: Mapping[str, float] = field(
        default_factory=lambda: {"element": 6.0, "dom": 1.5, "network": 2.5})

    # Short helper delays
    short_wait_timeout: float = 0.3
    brief_poll_interval_ms: int = 50
    short_delay_ms: int = 100
    medium_delay_ms: int = 200
    half_timeout_multiplier: float = 0.5

    # Login
    login_max_attempts: int = 3
    login_backoff_sec: float = 1.0

    # Submission
    submit_form_after_filling: bool = True
    submit_button_detection_timeout_ms: int = 10000
    submit_verify_timeout_ms: int = 3000
    submit_success_min_status: int = 200
    submit_success_max_status: int = 299
    enable_response_content_validation: bool = True
    enable_aria_disabled_check: bool = True
    submit_button_require_enabled: bool = True
    submit_click_retry_delay_s: float = 1.0
    submit_retry_delay_s: float = 2.0

    # Diagnostics
    enable_failure_screenshots: bool = False
    screenshot_dir: str = "./screenshots"
    debug_logging: bool = False

    # Browser
    browser_headless: bool = False
    browser_channel: str = "chromium"
    viewport_width: int = 1400
    viewport_height: int = 1000

    # Local mock website
    mock_website_url: str = "http://localhost:3000"
    mock_form_id: str = "0197cbae7daf72bdb96b3395b500d414"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AutomationConfig":
        """
        Build configuration from environment-style variables

        Absent or unparseable values fall back to their defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        optional_multipliers = {
            category: _env_float(env, f"DYNAMIC_OPTIONAL_{category.upper()}_MULT",
                                 defaults.optional_multipliers[category])
            for category in WAIT_CATEGORIES
        }
        required_multipliers = {
            category: _env_float(env, f"DYNAMIC_REQUIRED_{category.upper()}_MULT",
                                 defaults.required_multipliers[category])
            for category in WAIT_CATEGORIES
        }
        max_timeouts = {
            category: _env_float(env, f"DYNAMIC_MAX_{category.upper()}_TIMEOUT",
                                 defaults.max_timeouts[category])
            for category in WAIT_CATEGORIES
        }

        return cls(
            dynamic_wait_enabled=_env_bool(env, "DYNAMIC_WAIT_ENABLED", defaults.dynamic_wait_enabled),
            dynamic_wait_base_timeout=_env_float(env, "DYNAMIC_WAIT_BASE_TIMEOUT",
                                                 defaults.dynamic_wait_base_timeout),
            dynamic_wait_max_timeout=_env_float(env, "DYNAMIC_WAIT_MAX_TIMEOUT",
                                                defaults.dynamic_wait_max_timeout),
            dynamic_wait_multiplier=_env_float(env, "DYNAMIC_WAIT_MULTIPLIER", defaults.dynamic_wait_multiplier),
            global_timeout=_env_float(env, "GLOBAL_TIMEOUT", defaults.global_timeout),
            optional_multipliers=optional_multipliers,
            required_multipliers=required_multipliers,
            max_timeouts=max_timeouts,
            short_wait_timeout=_env_float(env, "SHORT_WAIT_TIMEOUT", defaults.short_wait_timeout),
            brief_poll_interval_ms=_env_int(env, "BRIEF_POLL_INTERVAL_MS", defaults.brief_poll_interval_ms),
            short_delay_ms=_env_int(env, "SHORT_DELAY_MS", defaults.short_delay_ms),
            medium_delay_ms=_env_int(env, "MEDIUM_DELAY_MS", defaults.medium_delay_ms),
            half_timeout_multiplier=_env_float(env, "HALF_TIMEOUT_MULTIPLIER", defaults.half_timeout_multiplier),
            login_max_attempts=max(1, _env_int(env, "LOGIN_MAX_ATTEMPTS", defaults.login_max_attempts)),
            login_backoff_sec=_env_float(env, "LOGIN_BACKOFF_SEC", defaults.login_backoff_sec),
            submit_form_after_filling=_env_bool(env, "SUBMIT", defaults.submit_form_after_filling),
            submit_button_detection_timeout_ms=_env_int(env, "SUBMIT_DETECTION_TIMEOUT_MS",
                                                        defaults.submit_button_detection_timeout_ms),
            submit_verify_timeout_ms=_env_int(env, "SUBMIT_VERIFY_MS", defaults.submit_verify_timeout_ms),
            submit_success_min_status=_env_int(env, "SUBMIT_MIN_STATUS", defaults.submit_success_min_status),
            submit_success_max_status=_env_int(env, "SUBMIT_MAX_STATUS", defaults.submit_success_max_status),
            enable_response_content_validation=_env_bool(env, "ENABLE_RESPONSE_VALIDATION",
                                                         defaults.enable_response_content_validation),
            enable_aria_disabled_check=_env_bool(env, "ENABLE_ARIA_DISABLED_CHECK",
                                                 defaults.enable_aria_disabled_check),
            submit_button_require_enabled=_env_bool(env, "SUBMIT_BUTTON_REQUIRE_ENABLED",
                                                    defaults.submit_button_require_enabled),
            submit_click_retry_delay_s=_env_float(env, "SUBMIT_CLICK_RETRY_DELAY_S",
                                                  defaults.submit_click_retry_delay_s),
            submit_retry_delay_s=_env_float(env, "SUBMIT_RETRY_DELAY", defaults.submit_retry_delay_s),
            enable_failure_screenshots=_env_bool(env, "ENABLE_SCREENSHOTS", defaults.enable_failure_screenshots),
            screenshot_dir=_env_str(env, "SCREENSHOT_DIR", defaults.screenshot_dir),
            debug_logging=_env_bool(env, "BOT_DEBUG_LOGGING", defaults.debug_logging),
            browser_headless=_env_bool(env, "BROWSER_HEADLESS", defaults.browser_headless),
            browser_channel=_env_str(env, "BROWSER_CHANNEL", defaults.browser_channel),
            mock_website_url=_env_str(env, "MOCK_WEBSITE_URL", defaults.mock_website_url),
            mock_form_id=_env_str(env, "MOCK_FORM_ID", defaults.mock_form_id),
        )

    def with_overrides(self, **changes) -> "AutomationConfig":
        """Return a copy with selected fields replaced"""
        return replace(self, **changes)

    def timeout_for(self, category: str, optional: bool = False) -> float:
        """Maximum wait budget in seconds for an element/dom/network wait"""
        if category not in WAIT_CATEGORIES:
            raise ValueError(f"Unknown wait category: {category}")
        multipliers = self.optional_multipliers if optional else self.required_multipliers
        return min(self.global_timeout * multipliers[category], self.max_timeouts[category])

    @property
    def resolved_browser_channel(self) -> Optional[str]:
        """Playwright channel name; the bundled chromium maps to the installed Chrome"""
        channel = self.browser_channel.lower()
        if channel == "chromium":
            return "chrome"
        return channel or None

    @property
    def submit_verify_timeout(self) -> float:
        """Confirmation wait budget in seconds, never beyond the global timeout"""
        return min(self.submit_verify_timeout_ms / 1000.0, self.global_timeout)

    def is_success_status(self, status: int) -> bool:
        return self.submit_success_min_status <= status <= self.submit_success_max_status
