#!/usr/bin/env python
"""
Unit tests for AutomationConfig
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from timesheet_bot.config import AutomationConfig


class TestAutomationConfigDefaults:

    def test_defaults(self):
        config = AutomationConfig()
        assert config.dynamic_wait_enabled is True
        assert config.dynamic_wait_base_timeout == 0.2
        assert config.dynamic_wait_max_timeout == 10.0
        assert config.dynamic_wait_multiplier == 1.2
        assert config.global_timeout == 10.0
        assert config.submit_form_after_filling is True
        assert config.login_max_attempts == 3

    def test_category_timeouts(self):
        config = AutomationConfig()
        assert config.timeout_for("element") == pytest.approx(6.0)
        assert config.timeout_for("element", optional=True) == pytest.approx(3.0)
        assert config.timeout_for("dom") == pytest.approx(1.5)
        assert config.timeout_for("dom", optional=True) == pytest.approx(1.0)
        assert config.timeout_for("network") == pytest.approx(2.5)
        assert config.timeout_for("network", optional=True) == pytest.approx(2.0)

    def test_category_timeouts_are_capped_by_ceiling(self):
        config = AutomationConfig(global_timeout=100.0)
        assert config.timeout_for("element") == 6.0
        assert config.timeout_for("dom", optional=True) == 1.5

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            AutomationConfig().timeout_for("animation")

    def test_submit_verify_timeout_bounded_by_global(self):
        assert AutomationConfig().submit_verify_timeout == 3.0
        assert AutomationConfig(global_timeout=1.0).submit_verify_timeout == 1.0

    def test_success_status_range(self):
        config = AutomationConfig()
        assert config.is_success_status(200)
        assert config.is_success_status(299)
        assert not config.is_success_status(302)
        assert not config.is_success_status(500)

    def test_chromium_channel_maps_to_chrome(self):
        assert AutomationConfig().resolved_browser_channel == "chrome"
        assert AutomationConfig(browser_channel="msedge").resolved_browser_channel == "msedge"

    def test_config_is_immutable(self):
        config = AutomationConfig()
        with pytest.raises(Exception):
            config.global_timeout = 5.0
        changed = config.with_overrides(global_timeout=5.0)
        assert changed.global_timeout == 5.0
        assert config.global_timeout == 10.0


class TestAutomationConfigFromEnv:

    def test_empty_environment_gives_defaults(self):
        assert AutomationConfig.from_env({}) == AutomationConfig()

    def test_reads_values(self):
        config = AutomationConfig.from_env({
            "DYNAMIC_WAIT_ENABLED": "false",
            "DYNAMIC_WAIT_BASE_TIMEOUT": "0.5",
            "GLOBAL_TIMEOUT": "20",
            "SUBMIT": "0",
            "SUBMIT_RETRY_DELAY": "4",
            "DYNAMIC_MAX_ELEMENT_TIMEOUT": "12",
            "ENABLE_SCREENSHOTS": "yes",
            "MOCK_WEBSITE_URL": "http://127.0.0.1:8080",
        })
        assert config.dynamic_wait_enabled is False
        assert config.dynamic_wait_base_timeout == 0.5
        assert config.global_timeout == 20.0
        assert config.submit_form_after_filling is False
        assert config.submit_retry_delay_s == 4.0
        assert config.timeout_for("element") == 12.0
        assert config.enable_failure_screenshots is True
        assert config.mock_website_url == "http://127.0.0.1:8080"

    def test_unparseable_values_fall_back_to_defaults(self):
        config = AutomationConfig.from_env({
            "GLOBAL_TIMEOUT": "soon",
            "DYNAMIC_WAIT_ENABLED": "maybe",
            "LOGIN_MAX_ATTEMPTS": "lots",
        })
        assert config.global_timeout == 10.0
        assert config.dynamic_wait_enabled is True
        assert config.login_max_attempts == 3

    def test_login_attempts_never_below_one(self):
        assert AutomationConfig.from_env({"LOGIN_MAX_ATTEMPTS": "0"}).login_max_attempts == 1
