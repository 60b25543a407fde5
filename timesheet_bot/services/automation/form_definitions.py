"""
Declarative schema of the timesheet web form

Field definitions, the login step sequence, submit button selectors and
success indicators shared by the login state machine, the form interactor
and the submission monitor.
"""

from typing import Any, Dict, List, Optional

from ...models.entry import HOURS_INCREMENT, is_quarter_hour, parse_entry_date
from ...models.form import FieldDefinition, LoginStep

MAX_HOURS = 24.0
MIN_HOURS = 0.0


def _as_hours(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _valid_hours(value: Any) -> bool:
    hours = _as_hours(value)
    return hours is not None and MIN_HOURS <= hours <= MAX_HOURS and is_quarter_hour(hours)


def _hours_message(value: Any) -> str:
    hours = _as_hours(value)
    if hours is not None and MIN_HOURS <= hours <= MAX_HOURS:
        return f"Hours must be in {HOURS_INCREMENT} hour increments (got {value})"
    return f"Hours must be between {MIN_HOURS} and {MAX_HOURS}"


FIELD_DEFINITIONS: Dict[str, FieldDefinition] = {
    "project_code": FieldDefinition(
        key="project_code",
        label="Project",
        locator="input[aria-label='Project Task']",
        validation=lambda v: v != "DISALLOWED",
        error_message=lambda v: f"Project code '{v}' is not allowed.",
    ),
    "date": FieldDefinition(
        key="date",
        label="Date",
        locator="input[placeholder='mm/dd/yyyy']",
        validation=lambda v: bool(v) and parse_entry_date(v) is not None,
        error_message=lambda v: f"Date '{v}' must be mm/dd/yyyy",
    ),
    "hours": FieldDefinition(
        key="hours",
        label="Hours",
        locator="input[aria-label='Hours']",
        validation=_valid_hours,
        error_message=_hours_message,
    ),
    "task_description": FieldDefinition(
        key="task_description",
        label="Task Description",
        locator="role=textbox[name='Task Description']",
        validation=lambda v: bool(str(v).strip()),
        error_message=lambda v: "Task description is required",
    ),
    "tool": FieldDefinition(
        key="tool",
        label="Tool",
        locator="input[aria-label*='Tool']",
        optional=True,
    ),
    "detail_code": FieldDefinition(
        key="detail_code",
        label="Detail Charge Code",
        locator="input[aria-label='Detail Charge Code']",
        optional=True,
        field_type="dropdown",
    ),
}

FIELD_ORDER: List[str] = [
    "project_code",
    "date",
    "hours",
    "tool",
    "task_description",
    "detail_code",
]

REQUIRED_FIELDS: List[str] = ["hours", "project_code", "date"]

# Fields whose validation state is checked after filling
VALIDATED_FIELDS = {"project_code", "date", "hours", "task_description"}

# Some projects label the tool input after the project
PROJECT_TO_TOOL_LABEL: Dict[str, str] = {
    "OSC-BBB": "BBB Tool",
    "FL-Carver Techs": "Carver Tool",
    "FL-Carver Tools": "Carver Tool",
    "SWFL-EQUIP": "SWFL Tool",
}

_missing = [key for key in FIELD_ORDER if key not in FIELD_DEFINITIONS]
if _missing:
    raise RuntimeError(f"FIELD_ORDER references undefined fields: {_missing}")


def tool_locator_for(project: Optional[str]) -> Optional[str]:
    label = PROJECT_TO_TOOL_LABEL.get(project or "")
    if label:
        return f"input[aria-label='{label}']"
    return None


def field_for_label(label: str) -> Optional[FieldDefinition]:
    for definition in FIELD_DEFINITIONS.values():
        if definition.label == label:
            return definition
    return None


LOGIN_STEPS: List[LoginStep] = [
    LoginStep("Wait for Login Form", "wait", "#loginEmail", wait_condition="visible", optional=True),
    LoginStep("Email Input", "input", "#loginEmail", value_key="email", sensitive=True),
    LoginStep("Continue", "click", "#formControl", expects_navigation=True, optional=True),
    LoginStep("Wait for SSO Choice", "wait", "a.clsJspButtonWide", optional=True),
    LoginStep("Login with company account", "click", "a.clsJspButtonWide",
              expects_navigation=True, optional=True),
    LoginStep("Wait for AAD Email", "wait", "#i0116"),
    LoginStep("AAD Email", "input", "#i0116", value_key="email", sensitive=True),
    LoginStep("AAD Next", "click", "#idSIButton9", expects_navigation=True, optional=True),
    LoginStep("Wait for Password", "wait", "#passwordInput"),
    LoginStep("Password Input", "input", "#passwordInput", value_key="password", sensitive=True),
    LoginStep("Password Submit", "click", "#submitButton", expects_navigation=True, optional=True),
    LoginStep("Stay Signed In Prompt", "wait", "#idBtn_Back", optional=True),
    LoginStep("Stay Signed In - No", "click", "#idBtn_Back", expects_navigation=True, optional=True),
    LoginStep("Wait for Form Page Ready", "wait", "input[aria-label='Project Task']"),
]


class FormSelectors:
    """Selectors for the form's submit control"""

    SUBMIT_BUTTON_PRIMARY = "button[data-client-id='form_submit_btn']"

    SUBMIT_BUTTON_FALLBACKS = [
        "button:has-text('Submit')",
        "button:has-text('Save')",
        "button:has-text('Send')",
        "input[type='submit']",
        "button[type='submit']",
        "button.submit",
        "button[aria-label*='submit']",
        "button[aria-label*='save']",
        "button[title*='submit']",
        "button[title*='save']",
    ]

    @classmethod
    def submit_buttons(cls) -> List[str]:
        return [cls.SUBMIT_BUTTON_PRIMARY] + cls.SUBMIT_BUTTON_FALLBACKS


SUBMIT_SUCCESS_INDICATORS: List[str] = [
    "submissionId",
    "confirmation",
    "Success! We've captured your submission",
    "Form submitted successfully",
    "Thank you for your submission",
]
