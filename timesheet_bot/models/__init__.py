from .entry import EntryStatus, TimesheetEntry
from .form import Credentials, FieldDefinition, FormTarget, LoginStep, QuarterDefinition
from .results import AggregateResult, QuarterResult, SubmissionOutcome

__all__ = [
    'EntryStatus',
    'TimesheetEntry',
    'Credentials',
    'FieldDefinition',
    'FormTarget',
    'LoginStep',
    'QuarterDefinition',
    'AggregateResult',
    'QuarterResult',
    'SubmissionOutcome',
]
