#!/usr/bin/env python
"""
Unit tests for the form schema and row pre-checks
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from timesheet_bot.exceptions import FieldValidationError
from timesheet_bot.services.automation.form_definitions import (
    FIELD_DEFINITIONS, FIELD_ORDER, LOGIN_STEPS, REQUIRED_FIELDS, FormSelectors,
    field_for_label, tool_locator_for
)
from timesheet_bot.services.automation.form_orchestrator import (
    build_fields, format_field_value, is_empty_value, precheck_row, validate_row
)


def valid_fields(**overrides):
    fields = {"project_code": "A", "date": "01/10/2025", "hours": 8, "task_description": "Testing"}
    fields.update(overrides)
    return fields


class TestFieldDefinitions:

    def test_order_covers_known_fields(self):
        assert set(FIELD_ORDER) == set(FIELD_DEFINITIONS)
        assert set(REQUIRED_FIELDS) <= set(FIELD_DEFINITIONS)

    def test_optional_fields(self):
        assert FIELD_DEFINITIONS["tool"].optional
        assert FIELD_DEFINITIONS["detail_code"].optional
        assert not FIELD_DEFINITIONS["hours"].optional

    def test_disallowed_project(self):
        assert FIELD_DEFINITIONS["project_code"].validate("DISALLOWED") == "Project code 'DISALLOWED' is not allowed."
        assert FIELD_DEFINITIONS["project_code"].validate("OSC-BBB") is None

    @pytest.mark.parametrize("hours", [0, 0.25, 8, "7.5", 24])
    def test_valid_hours(self, hours):
        assert FIELD_DEFINITIONS["hours"].validate(hours) is None

    @pytest.mark.parametrize("hours", [30, -1, "lots", None])
    def test_hours_out_of_range(self, hours):
        assert FIELD_DEFINITIONS["hours"].validate(hours) == "Hours must be between 0.0 and 24.0"

    def test_hours_increment(self):
        assert FIELD_DEFINITIONS["hours"].validate(7.3) == "Hours must be in 0.25 hour increments (got 7.3)"

    def test_date_format(self):
        assert FIELD_DEFINITIONS["date"].validate("2025-13-01") == "Date '2025-13-01' must be mm/dd/yyyy"
        assert FIELD_DEFINITIONS["date"].validate("01/10/2025") is None

    def test_lookup_by_label(self):
        assert field_for_label("Detail Charge Code").key == "detail_code"
        assert field_for_label("Unknown") is None

    def test_tool_locator_override(self):
        assert tool_locator_for("OSC-BBB") == "input[aria-label='BBB Tool']"
        assert tool_locator_for("A") is None

    def test_login_steps_mark_credential_inputs_sensitive(self):
        for step in LOGIN_STEPS:
            if step.action == "input":
                assert step.sensitive
                assert step.value_key in ("email", "password")

    def test_primary_submit_button_first(self):
        assert FormSelectors.submit_buttons()[0] == FormSelectors.SUBMIT_BUTTON_PRIMARY


class TestRowHelpers:

    def test_empty_values(self):
        assert is_empty_value(None)
        assert is_empty_value("  ")
        assert is_empty_value(float("nan"))
        assert is_empty_value("nan")
        assert not is_empty_value(0)

    def test_build_fields_drops_empty_and_unknown(self):
        row = {"Project": "A", "Date": "01/10/2025", "Hours": 8, "Tool": None,
               "Task Description": "Testing", "Detail Charge Code": "", "Notes": "ignored"}
        assert build_fields(row) == valid_fields()

    def test_format_values(self):
        assert format_field_value("hours", 8.0) == "8"
        assert format_field_value("hours", "7.50") == "7.5"
        assert format_field_value("date", "2025-01-10") == "01/10/2025"
        assert format_field_value("project_code", " A ") == "A"


class TestPrecheckRow:

    def test_valid_row(self):
        assert precheck_row(valid_fields()) is None

    def test_missing_required_fields_listed_by_label(self):
        fields = valid_fields()
        del fields["hours"]
        del fields["date"]
        assert precheck_row(fields) == "Missing required fields: Hours, Date"

    def test_hours_out_of_range(self):
        assert precheck_row(valid_fields(hours=30)) == "Hours must be between 0.0 and 24.0"

    def test_missing_task_description(self):
        fields = valid_fields()
        del fields["task_description"]
        assert precheck_row(fields) == "Task description is required"

    def test_first_failing_field_in_order_wins(self):
        error = precheck_row(valid_fields(project_code="DISALLOWED", hours=30))
        assert error == "Project code 'DISALLOWED' is not allowed."

    def test_quarter_mismatch(self):
        error = precheck_row(valid_fields(date="10/15/2025"), quarter_id="Q1-2026")
        assert error == ("Date 10/15/2025 belongs to Q4-2025 but form configured "
                         "for different quarter (Q1-2026)")

    def test_matching_quarter(self):
        assert precheck_row(valid_fields(), quarter_id="Q1-2025") is None

    def test_validate_row_raises_field_error(self):
        with pytest.raises(FieldValidationError) as exc_info:
            validate_row(valid_fields(hours=30))
        assert exc_info.value.field == "hours"
        assert exc_info.value.value == 30
        assert exc_info.value.error_code == "FIELD_VALIDATION_FAILURE"
