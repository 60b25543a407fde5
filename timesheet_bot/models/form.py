"""
Declarative form schema value objects
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple


def _always_valid(value: Any) -> bool:
    return True


def _no_message(value: Any) -> str:
    return ""


@dataclass(frozen=True)
class FieldDefinition:
    """One field of the web form"""
    key: str
    label: str
    locator: str
    validation: Callable[[Any], bool] = _always_valid
    error_message: Callable[[Any], str] = _no_message
    optional: bool = False
    inject_value: bool = True
    field_type: str = "text"

    def validate(self, value: Any) -> Optional[str]:
        """Return the field's error message when the predicate rejects value, else None"""
        try:
            accepted = bool(self.validation(value))
        except (TypeError, ValueError):
            accepted = False
        if accepted:
            return None
        return self.error_message(value) or f"Invalid value for {self.label}"


@dataclass(frozen=True)
class LoginStep:
    """One declarative step of the login sequence"""
    name: str
    action: str  # "wait" | "input" | "click"
    locator: str
    value_key: Optional[str] = None
    wait_condition: str = "visible"
    expects_navigation: bool = False
    optional: bool = False
    sensitive: bool = False

    def __post_init__(self):
        if self.action not in ("wait", "input", "click"):
            raise ValueError(f"Unsupported login step action: {self.action}")
        if self.action == "input" and not self.value_key:
            raise ValueError(f"Input step '{self.name}' needs a value_key")


@dataclass(frozen=True)
class FormTarget:
    """Where and how a batch is submitted; built per quarter, never mutated"""
    base_url: str
    form_id: str
    submission_endpoint: str
    success_url_patterns: Tuple[str, ...] = field(default_factory=tuple)
    quarter_id: Optional[str] = None


@dataclass(frozen=True)
class QuarterDefinition:
    """A calendar quarter and the form that accepts its rows"""
    id: str
    name: str
    start_date: str
    end_date: str
    form_url: str
    form_id: str

    def contains(self, iso_date: str) -> bool:
        # ISO dates compare correctly as strings
        return self.start_date <= iso_date <= self.end_date


@dataclass(frozen=True)
class Credentials:
    identity: str
    secret: str

    def __repr__(self):
        return f"Credentials(identity={self.identity!r}, secret='***')"
