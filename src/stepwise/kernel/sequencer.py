from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from functools import partial
from typing import TYPE_CHECKING, Any

from stepwise.kernel.cancellation import CancellationToken, race_with_cancellation
from stepwise.kernel.errors import DataExhaustedError, RunFailedError, StructuredError, classify_error
from stepwise.kernel.run_state import RunPhase, RunState
from stepwise.kernel.script import Script
from stepwise.kernel.settings import RunSettings, merge_settings, overlay_settings
from stepwise.kernel.step import Step
from stepwise.observability.logging import LogMessage
from stepwise.observers.chain import ObserverChain
from stepwise.observers.observer import RunObserver

if TYPE_CHECKING:
    from stepwise.ports.driver import BrowserFactory, BrowserSession, DriverClient
    from stepwise.ports.interceptor import InterceptorFactory
    from stepwise.ports.log_sink import LogSink


class _AfterOnce:
    # The run-level after hook is shared by the normal end of a run and cancel(); it fires at most once.
    # It is armed once the before hook completes; a fire() ahead of that is held until arm().
    def __init__(self, observers: ObserverChain, run: StepSequencer) -> None:
        self._observers = observers
        self._run = run
        self._armed = False
        self._pending = False
        self._fired = False

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def fired(self) -> bool:
        return self._fired

    async def arm(self) -> None:
        self._armed = True
        if self._pending:
            await self.fire()

    async def fire(self) -> None:
        if self._fired:
            return
        if not self._armed:
            self._pending = True
            return
        self._fired = True
        await self._observers.after(run=self._run)


class StepSequencer:
    # Drives one test: runs the script's steps in order against a browser session, once per iteration.
    def __init__(
        self,
        *,
        client: DriverClient,
        script: Script,
        browser_factory: BrowserFactory,
        interceptor_factory: InterceptorFactory,
        observers: Sequence[RunObserver] = (),
        settings_override: Mapping[str, Any] | None = None,
        log_sink: LogSink | None = None,
    ) -> None:
        self.client = client
        self.script = script
        self.settings: RunSettings = merge_settings(script.settings, settings_override)
        self.steps: tuple[Step, ...] = tuple(script.steps)
        self.browser_factory = browser_factory
        self.request_interceptor = interceptor_factory(self.settings.blocked_domains)
        self.observers: tuple[RunObserver, ...] = tuple(observers)
        self.log_sink = log_sink
        self.iteration = 0
        self.running_browser: BrowserSession | None = None
        self._state = RunState()
        self._token: CancellationToken | None = None
        self._after: _AfterOnce | None = None
        self._last_error: StructuredError | None = None
        # Bumped by every run; steps abandoned by an earlier run no longer own the run state.
        self._generation = 0

    @property
    def phase(self) -> RunPhase:
        return self._state.phase

    @property
    def outcome(self) -> RunPhase | None:
        return self._state.outcome

    @property
    def failed(self) -> bool:
        return self._state.failed

    @property
    def skipping(self) -> bool:
        return self._state.failed

    @property
    def last_error(self) -> StructuredError | None:
        return self._last_error

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    @property
    def active_settings(self) -> RunSettings:
        if self.running_browser is None:
            return self.settings
        return self.running_browser.settings

    @property
    def current_url(self) -> str:
        if self.running_browser is None:
            return ""
        return self.running_browser.url

    async def before_run(self) -> None:
        # Once per test, ahead of the first iteration.
        if self.script.before_test_run is not None:
            await self.script.before_test_run()

    async def run(self, iteration: int = 0, token: CancellationToken | None = None) -> None:
        await self.run_with_cancellation(iteration, token if token is not None else CancellationToken())

    async def run_with_cancellation(self, iteration: int, token: CancellationToken) -> None:
        self._state.begin()
        self._generation += 1
        generation = self._generation
        self.iteration = iteration
        self.running_browser = None
        self._last_error = None
        self._token = token
        observers = ObserverChain(self.observers)
        after = _AfterOnce(observers, self)
        self._after = after
        self._log("info", "run started", iteration=iteration, steps=len(self.steps))

        page: object | None = None
        attached = False
        try:
            await self.client.reopen_page(self.settings.incognito)
            page = self.client.page
            await self.request_interceptor.attach(page)
            attached = True

            browser = self.browser_factory(
                client=self.client,
                settings=self.settings,
                will_run_command=partial(self.will_run_command, observers),
                did_run_command=partial(self.did_run_command, observers),
            )
            self.running_browser = browser
            await self._configure_browser(browser)

            # Cancelled during setup: neither run-level hook fires.
            if token.requested:
                self._stop_cancelled(None)
                return
            await observers.before(run=self)
            await after.arm()
            if token.requested:
                self._stop_cancelled(None)
                return

            record = await self.script.data.feed()
            if record is None:
                raise DataExhaustedError()
            self._log("debug", "data record fed", iteration=iteration)

            for step in self.steps:
                if not step.runs_on(iteration):
                    continue
                if token.requested:
                    self._stop_cancelled(step)
                    return

                browser.custom_context = step
                await race_with_cancellation(
                    self.run_step(observers, browser, step, record, generation=generation),
                    token,
                    on_abandoned_error=partial(self._log_abandoned, step),
                )

                if token.requested:
                    self._stop_cancelled(step)
                    return
                if self._state.failed:
                    self._log("warning", "failed, bailing out of steps", step=step.name)
                    raise RunFailedError(step.name, self._last_error)

            await after.fire()
            self._state.settle(RunPhase.PASSED)
        except Exception as exc:
            self._state.mark_failed()
            if self._state.running:
                self._state.settle(RunPhase.FAILED)
            self._log("error", "run failed", iteration=iteration, error=str(exc))
            # The after hook only pairs with a before hook that completed.
            if after.armed:
                await after.fire()
            raise
        except BaseException:
            # Task cancellation or interpreter shutdown: the run is abandoned, not failed by a step.
            self._state.mark_failed()
            if self._state.running:
                self._state.settle(RunPhase.CANCELLED)
            raise
        finally:
            self.running_browser = None
            try:
                if attached:
                    await self.request_interceptor.detach(page)
            finally:
                self._state.finish()
                self._log("info", "run finished", iteration=iteration, outcome=_phase_value(self._state.outcome))

    async def run_step(
        self,
        observers: RunObserver,
        browser: BrowserSession,
        step: Step,
        record: object,
        *,
        generation: int | None = None,
    ) -> None:
        # Step errors never escape: they are classified, reported and folded into the run state.
        # A step abandoned by a cancelled run may still finish later; it then reports to observers
        # but no longer writes the failed flag or last error of whichever run is current.
        owned = generation is None or generation == self._generation
        error: StructuredError | None = None
        await observers.before_step(run=self, step=step)
        self._log("debug", "running step", step=step.name)

        try:
            with overlay_settings(browser, self.settings, step.options):
                await step.fn(browser, record)
        except Exception as exc:
            error = classify_error(exc)

        if error is not None:
            if owned:
                self._state.mark_failed()
                self._last_error = error
            self._log("warning", "step failed", step=step.name, kind=error.kind.value, error=error.message)
            await observers.on_step_error(run=self, step=step, error=error)
        else:
            await observers.on_step_passed(run=self, step=step)

        await observers.after_step(run=self, step=step)

        if error is None and owned:
            await self.do_step_delay()

    async def cancel(self) -> None:
        self._state.mark_failed()
        if self._token is not None:
            self._token.cancel()
        if self._after is not None:
            await self._after.fire()

    async def do_step_delay(self) -> None:
        # The delay is a plain sleep; the cancellation token does not interrupt it.
        if self.skipping or self.settings.step_delay <= 0:
            return
        await asyncio.sleep(self.settings.step_delay)

    async def will_run_command(self, observers: RunObserver, browser: BrowserSession, command: str) -> None:
        step = browser.custom_context if isinstance(browser.custom_context, Step) else None
        await observers.before_step_action(run=self, step=step, action=command)

    async def did_run_command(self, observers: RunObserver, browser: BrowserSession, command: str) -> None:
        step = browser.custom_context if isinstance(browser.custom_context, Step) else None
        await observers.after_step_action(run=self, step=step, action=command)

    async def take_screenshot(self, options: Mapping[str, object] | None = None) -> None:
        if self.running_browser is None:
            return
        await self.running_browser.take_screenshot(options)

    async def fetch_screenshots(self) -> list[str]:
        if self.running_browser is None:
            return []
        return await self.running_browser.fetch_screenshots()

    async def _configure_browser(self, browser: BrowserSession) -> None:
        # Fixed order: cache, cookies, device, user agent, cache toggle, headers.
        settings = self.settings
        if settings.clear_cache:
            await browser.clear_browser_cache()
        if settings.clear_cookies:
            await browser.clear_browser_cookies()
        if settings.device:
            await browser.emulate_device(settings.device)
        if settings.user_agent:
            await browser.set_user_agent(settings.user_agent)
        if settings.disable_cache:
            await browser.set_cache_disabled(True)
        if settings.extra_http_headers:
            await browser.set_extra_http_headers(settings.extra_http_headers)

    def _stop_cancelled(self, step: Step | None) -> None:
        # Cancellation short-circuit: no further steps and no after hook from the run itself.
        self._state.settle(RunPhase.CANCELLED)
        self._log("info", "run cancelled", step=None if step is None else step.name)

    def _log_abandoned(self, step: Step, error: BaseException) -> None:
        self._log("error", "abandoned step raised", step=step.name, error=repr(error))

    def _log(self, level: str, message: str, **fields: object) -> None:
        if self.log_sink is None:
            return
        self.log_sink.emit(LogMessage(level=level, message=message, fields={"test": self.settings.name, **fields}))


def _phase_value(phase: RunPhase | None) -> str | None:
    return None if phase is None else phase.value
