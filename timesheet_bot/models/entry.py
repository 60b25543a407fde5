"""
Timesheet entry data model
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

_US_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})$")

HOURS_INCREMENT = 0.25


class EntryStatus(Enum):
    """Submission status of a stored timesheet entry"""
    PENDING = "Pending"
    IN_PROGRESS = "In_Progress"
    SUBMITTED = "Submitted"


def parse_entry_date(value: Any) -> Optional[date]:
    """Parse a mm/dd/yyyy, mm-dd-yyyy or ISO date into a date; None when unparseable"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()
    try:
        match = _US_DATE.match(text)
        if match:
            month, day, year = (int(part) for part in match.groups())
            return date(year, month, day)
        match = _ISO_DATE.match(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return date(year, month, day)
    except ValueError:
        return None
    return None


def to_iso_date(value: Any) -> Optional[str]:
    parsed = parse_entry_date(value)
    return parsed.isoformat() if parsed else None


def to_form_date(value: Any) -> Optional[str]:
    """Format a date the way the web form expects it (mm/dd/yyyy)"""
    parsed = parse_entry_date(value)
    return parsed.strftime("%m/%d/%Y") if parsed else None


def quarter_key(value: Any) -> Optional[str]:
    """Calendar quarter key such as 'Q1-2025'; None when the date cannot be parsed"""
    parsed = parse_entry_date(value)
    if parsed is None:
        return None
    return f"Q{(parsed.month - 1) // 3 + 1}-{parsed.year}"


def _minutes_since_midnight(value: str) -> Optional[int]:
    match = _CLOCK.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def hours_between(time_in: str, time_out: str) -> Optional[float]:
    """Legacy time-in/time-out pair converted to decimal hours"""
    start = _minutes_since_midnight(time_in)
    end = _minutes_since_midnight(time_out)
    if start is None or end is None or end <= start:
        return None
    return round((end - start) / 60.0, 2)


def is_quarter_hour(hours: float) -> bool:
    return abs(hours / HOURS_INCREMENT - round(hours / HOURS_INCREMENT)) < 1e-9


@dataclass
class TimesheetEntry:
    """A stored timesheet row

    ``hours`` is the canonical time representation. ``time_in``/``time_out``
    are only read when ``hours`` is missing, for rows saved by older clients.
    """
    date: str
    project: str
    task_description: str
    hours: Optional[float] = None
    tool: Optional[str] = None
    charge_code: Optional[str] = None
    id: Optional[int] = None
    time_in: Optional[str] = None
    time_out: Optional[str] = None
    status: EntryStatus = EntryStatus.PENDING

    @property
    def effective_hours(self) -> Optional[float]:
        if self.hours is not None:
            return self.hours
        if self.time_in and self.time_out:
            return hours_between(self.time_in, self.time_out)
        return None

    @property
    def iso_date(self) -> Optional[str]:
        return to_iso_date(self.date)

    def to_bot_row(self) -> dict:
        """Convert to the label-keyed row the web form bot consumes"""
        return {
            "Project": self.project,
            "Date": to_form_date(self.date) or self.date,
            "Hours": self.effective_hours,
            "Tool": self.tool,
            "Task Description": self.task_description,
            "Detail Charge Code": self.charge_code,
        }

    def mark_in_progress(self):
        self.status = EntryStatus.IN_PROGRESS

    def mark_submitted(self):
        self.status = EntryStatus.SUBMITTED

    def reset_status(self):
        self.status = EntryStatus.PENDING
