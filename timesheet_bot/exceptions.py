"""
Custom exceptions for timesheet automation error handling
"""

from typing import Optional


class AutomationError(Exception):
    """Base exception class for all automation-related errors"""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "AUTOMATION_ERROR"
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} (Code: {self.error_code}, Details: {self.details})"
        return f"{self.message} (Code: {self.error_code})"


class BrowserInitializationError(AutomationError):
    """Exception raised when browser initialization fails"""

    def __init__(self, message: str, channel: str = "unknown", details: Optional[dict] = None):
        super().__init__(message, "BROWSER_INIT_ERROR", details)
        self.channel = channel


class BotNotStartedError(AutomationError):
    """Exception raised when a page is requested before the browser session started"""

    def __init__(self, operation: str = "page access"):
        super().__init__(f"Browser session not started (required for {operation})", "BOT_NOT_STARTED",
                         {"operation": operation})
        self.operation = operation


class ElementNotFoundError(AutomationError):
    """Exception raised when a required element cannot be found on the page"""

    def __init__(self, selector: str, element_type: str = "element", timeout: Optional[float] = None):
        message = f"Could not find {element_type} with selector: {selector}"
        if timeout:
            message += f" (timeout: {timeout}s)"

        details = {
            "selector": selector,
            "element_type": element_type,
            "timeout": timeout
        }
        super().__init__(message, "ELEMENT_NOT_FOUND", details)
        self.selector = selector
        self.element_type = element_type
        self.timeout = timeout


class PageNavigationError(AutomationError):
    """Exception raised when page navigation fails"""

    def __init__(self, url: str, attempts: int = 1, last_error: Optional[str] = None):
        message = f"Failed to navigate to {url}"
        if attempts > 1:
            message += f" after {attempts} attempts"

        details = {
            "url": url,
            "attempts": attempts,
            "last_error": last_error
        }
        super().__init__(message, "NAVIGATION_ERROR", details)
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class FormInteractionError(AutomationError):
    """Exception raised when form interaction fails"""

    def __init__(self, action: str, field: str, details: Optional[dict] = None):
        message = f"Failed to {action} on field: {field}"
        error_details = {"action": action, "field": field}
        if details:
            error_details.update(details)

        super().__init__(message, "FORM_INTERACTION_ERROR", error_details)
        self.action = action
        self.field = field


class RoutingError(AutomationError):
    """Exception raised when no quarter definition covers a row's date"""

    def __init__(self, date: str, quarter_key: Optional[str] = None):
        message = f"No quarter definition found for date {date}"
        super().__init__(message, "ROUTING_FAILURE", {"date": date, "quarter_key": quarter_key})
        self.date = date
        self.quarter_key = quarter_key


class AuthenticationError(AutomationError):
    """Exception raised when the login sequence exhausts its attempts"""

    def __init__(self, reason: str, attempts: int = 1, step: Optional[str] = None):
        message = f"Login failed: {reason}"
        if attempts > 1:
            message += f" (after {attempts} attempts)"
        super().__init__(message, "AUTHENTICATION_FAILURE", {"attempts": attempts, "step": step})
        self.reason = reason
        self.attempts = attempts
        self.step = step


class FieldValidationError(AutomationError):
    """Exception raised when a field's predicate rejects its value"""

    def __init__(self, field: str, reason: str, value: object = None):
        super().__init__(reason, "FIELD_VALIDATION_FAILURE", {"field": field, "value": value})
        self.field = field
        self.reason = reason
        self.value = value

    def __str__(self):
        return self.reason


class SubmitControlError(AutomationError):
    """Exception raised when the submit button is missing, disabled or cannot be clicked"""

    def __init__(self, reason: str, selector: Optional[str] = None):
        super().__init__(reason, "SUBMIT_CONTROL_FAILURE", {"selector": selector})
        self.reason = reason
        self.selector = selector

    def __str__(self):
        return self.reason


class ConfirmationError(AutomationError):
    """Exception raised when the click succeeded but no success signal was observed"""

    def __init__(self, reason: str, timeout: Optional[float] = None, responses_seen: int = 0):
        super().__init__(reason, "CONFIRMATION_FAILURE", {"timeout": timeout, "responses_seen": responses_seen})
        self.reason = reason
        self.timeout = timeout
        self.responses_seen = responses_seen

    def __str__(self):
        return self.reason


class SubmissionCancelledError(AutomationError):
    """Exception raised when the abort signal has fired"""

    def __init__(self, context: str = "Operation", reason: Optional[str] = None):
        super().__init__(f"{context} was cancelled", "CANCELLED", {"reason": reason} if reason else None)
        self.context = context
        self.reason = reason

    def __str__(self):
        return self.message
