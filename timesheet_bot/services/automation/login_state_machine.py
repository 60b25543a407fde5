"""
Login state machine using the transitions framework

One state per declarative login step, walked strictly in order:

    idle -> navigating -> step_0 -> ... -> step_N -> authenticated
                 \\__________________________________/
                                 |  fail
                                 v
                              failed --reset--> idle   (next attempt)

Optional steps that cannot be satisfied are skipped. A required step that
fails ends the attempt; the whole sequence is retried with a fixed backoff
until the configured attempt count is exhausted.
"""

import logging
from typing import Callable, List, Optional, Sequence

from playwright.async_api import Page
from transitions.extensions.asyncio import AsyncMachine

from ...config import AutomationConfig
from ...exceptions import AuthenticationError, PageNavigationError, SubmissionCancelledError
from ...models.form import Credentials, FormTarget, LoginStep
from .abort import AbortSignal, check_aborted
from .form_definitions import LOGIN_STEPS
from .probes import PageProbes


class LoginStateMachine:
    """Drives a page through the login steps until authenticated or failed"""

    def __init__(self, page: Page, probes: PageProbes, credentials: Credentials, target: FormTarget,
                 config: AutomationConfig, steps: Optional[Sequence[LoginStep]] = None,
                 abort_signal: Optional[AbortSignal] = None):
        self.page = page
        self.probes = probes
        self.credentials = credentials
        self.target = target
        self.config = config
        self.steps: List[LoginStep] = list(LOGIN_STEPS if steps is None else steps)
        self.abort_signal = abort_signal
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.on_log: Optional[Callable[[str], None]] = None
        self.attempts_made = 0
        self.last_failure: Optional[str] = None

        self.states = ['idle', 'navigating'] + [self._step_state(i) for i in range(len(self.steps))] + \
            ['authenticated', 'failed']

        self.machine = AsyncMachine(
            model=self,
            states=self.states,
            initial='idle',
            auto_transitions=False,
            ignore_invalid_triggers=True,
            send_event=True
        )
        self._setup_transitions()

    @staticmethod
    def _step_state(index: int) -> str:
        return f"step_{index}"

    def _setup_transitions(self):
        chain = ['navigating'] + [self._step_state(i) for i in range(len(self.steps))] + ['authenticated']
        transitions = [['begin', 'idle', 'navigating']]
        transitions += [['advance', source, dest] for source, dest in zip(chain, chain[1:])]
        transitions += [
            ['fail', '*', 'failed'],
            ['retry', 'failed', 'idle'],
        ]
        self.machine.add_transitions(transitions)

    def _log(self, message: str):
        self.logger.info(message)
        if self.on_log:
            self.on_log(message)

    def is_terminal(self) -> bool:
        return self.state in ('authenticated', 'failed')

    # =================== Public API ===================

    async def run(self) -> bool:
        """
        Run the login sequence with bounded retries

        Returns:
            True once authenticated

        Raises:
            AuthenticationError: when every attempt failed
            SubmissionCancelledError: when the abort signal fires
        """
        max_attempts = max(1, self.config.login_max_attempts)
        for attempt in range(1, max_attempts + 1):
            self.attempts_made = attempt
            check_aborted(self.abort_signal, "Login")
            try:
                await self._attempt()
                return True
            except SubmissionCancelledError:
                await self.fail(reason="cancelled")
                raise
            except (AuthenticationError, PageNavigationError) as e:
                self.last_failure = e.reason if isinstance(e, AuthenticationError) else e.message
                await self.fail(reason=self.last_failure)
                check_aborted(self.abort_signal, "Login")
                if attempt < max_attempts:
                    self.logger.warning(f"Login attempt {attempt}/{max_attempts} failed: {e.message}; "
                                        f"retrying in {self.config.login_backoff_sec}s")
                    await self.probes.engine.pause(self.config.login_backoff_sec, "Login")
                    await self.retry()

        raise AuthenticationError(self.last_failure or "login sequence did not complete", attempts=max_attempts)

    # =================== Attempt ===================

    async def _attempt(self):
        await self.begin()
        await self._navigate()

        for index, step in enumerate(self.steps):
            check_aborted(self.abort_signal, "Login")
            await self.advance()
            satisfied = await self._execute_step(step)
            if satisfied:
                continue
            if step.optional:
                self.logger.debug(f"Skipping optional login step: {step.name}")
                continue
            raise AuthenticationError(f"required step '{step.name}' was not satisfied", step=step.name)

        await self.advance()

    async def _navigate(self):
        url = self.target.base_url
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=self.config.global_timeout * 1000)
        except Exception as e:
            raise PageNavigationError(url, last_error=str(e))
        await self.probes.page_ready(optional=True)

    def _resolve_value(self, value_key: str) -> str:
        if value_key == "email":
            return self.credentials.identity
        if value_key == "password":
            return self.credentials.secret
        return value_key

    async def _execute_step(self, step: LoginStep) -> bool:
        """Run one step; returns False when it could not be satisfied"""
        try:
            if step.action == "wait":
                return await self.probes.element_state(step.locator, step.wait_condition, optional=step.optional)

            if not await self.probes.element_state(step.locator, "visible", optional=step.optional):
                return False

            if step.action == "input":
                await self.page.locator(step.locator).first.fill(self._resolve_value(step.value_key))
                if step.sensitive:
                    self.logger.debug(f"Filled login step: {step.name}")
                else:
                    self.logger.debug(f"Filled login step: {step.name} = {step.value_key}")
                return True

            await self.page.locator(step.locator).first.click()
            if step.expects_navigation:
                await self.probes.page_ready(optional=True)
            return True
        except SubmissionCancelledError:
            raise
        except Exception as e:
            # Never include the raw error for sensitive steps, it may echo the value
            detail = "" if step.sensitive else f": {e}"
            self.logger.debug(f"Login step '{step.name}' raised{detail}")
            return False

    # =================== State callbacks ===================

    async def on_enter_navigating(self, event):
        self._log(f"Opening login page for {self.credentials.identity}")

    async def on_enter_authenticated(self, event):
        self._log(f"Login complete after {self.attempts_made} attempt(s)")

    async def on_enter_failed(self, event):
        reason = event.kwargs.get('reason', 'unknown')
        self._log(f"Login attempt {self.attempts_made} failed: {reason}")
