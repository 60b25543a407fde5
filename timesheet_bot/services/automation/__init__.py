"""
Browser automation for timesheet form submission

Architecture Overview:
======================

    AutomationService (services/automation_service.py)
                    │  quarter routing
                    ▼
    ┌───────────────────────────────────────────────────┐
    │            SubmissionBackend                      │ ← Abstract interface
    └──────────────┬──────────────────────┬─────────────┘
                   │                      │
                   ▼                      ▼
    ┌─────────────────────┐  ┌─────────────────────────┐
    │  PlaywrightBackend  │  │      MockBackend        │
    │  (BrowserSession)   │  │  (no browser, tests)    │
    └─────────┬───────────┘  └─────────────────────────┘
              ▼
    ┌─────────────────────────────────────────────────┐
    │              FormOrchestrator                   │ ← per-batch driver
    │   LoginStateMachine → FormInteractor →          │
    │   SubmissionMonitor                             │
    └─────────────────┬───────────────────────────────┘
                      ▼
    ┌─────────────────────────────────────────────────┐
    │        PageProbes on top of WaitEngine          │ ← timing primitive
    └─────────────────────────────────────────────────┘

    Cross-cutting: AbortController/AbortSignal, ProgressChannel,
    form_definitions (field schema, login steps, submit selectors).
"""

from .abort import AbortController, AbortSignal, check_aborted, create_cancelled_result, setup_abort_handler
from .base_backend import SubmissionBackend
from .dynamic_wait import WaitEngine
from .form_orchestrator import FormOrchestrator
from .login_state_machine import LoginStateMachine
from .mock_backend import MockBackend
from .playwright_backend import PlaywrightBackend
from .progress import ProgressChannel, ProgressEvent

__all__ = [
    'AbortController',
    'AbortSignal',
    'check_aborted',
    'create_cancelled_result',
    'setup_abort_handler',
    'SubmissionBackend',
    'WaitEngine',
    'FormOrchestrator',
    'LoginStateMachine',
    'MockBackend',
    'PlaywrightBackend',
    'ProgressChannel',
    'ProgressEvent',
]
