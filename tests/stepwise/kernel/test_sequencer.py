from __future__ import annotations

import asyncio

import pytest

from fakes import RecordingObserver, failing, passing
from stepwise.adapters.data_sources import InMemoryDataSource
from stepwise.kernel.errors import DataExhaustedError, ErrorKind, RunFailedError
from stepwise.kernel.run_state import InvalidRunTransition, RunPhase
from stepwise.kernel.settings import RunSettings
from stepwise.kernel.step import Step, StepType
from stepwise.observers.observer import RunObserver


@pytest.mark.asyncio
async def test_assertion_failure_stops_run_and_reports_hooks_in_order(harness, recorder) -> None:
    # Step B fails with an assertion: C never runs and the run raises after cleanup.
    invoked: list[str] = []
    steps = [passing("A", invoked), failing("B", "assertion failed: x", invoked), passing("C", invoked)]
    run = harness.build(steps, observers=[recorder])

    with pytest.raises(RunFailedError) as info:
        await run.run(1)

    assert str(info.value) == "test failed"
    assert info.value.step_name == "B"
    assert info.value.error.kind is ErrorKind.ASSERTION
    assert "assertion failed: x" in info.value.error.original_stack
    assert invoked == ["A", "B"]
    assert recorder.calls == [
        ("before",),
        ("before_step", "A"),
        ("on_step_passed", "A"),
        ("after_step", "A"),
        ("before_step", "B"),
        ("on_step_error", "B", "assertion"),
        ("after_step", "B"),
        ("after",),
    ]
    assert run.failed is True
    assert run.outcome is RunPhase.FAILED
    assert run.phase is RunPhase.DONE


@pytest.mark.asyncio
async def test_passing_run_fires_each_step_hook_once(harness, recorder) -> None:
    # All steps pass: before, three hooks per step, after.
    run = harness.build([passing("A"), passing("B")], observers=[recorder])

    await run.run(1)

    assert recorder.calls == [
        ("before",),
        ("before_step", "A"),
        ("on_step_passed", "A"),
        ("after_step", "A"),
        ("before_step", "B"),
        ("on_step_passed", "B"),
        ("after_step", "B"),
        ("after",),
    ]
    assert run.outcome is RunPhase.PASSED
    assert run.failed is False
    assert run.last_error is None


@pytest.mark.parametrize("failing_index", [0, 1, 2, 3])
@pytest.mark.asyncio
async def test_first_failing_step_bounds_executed_steps(harness, failing_index: int) -> None:
    # Exactly the steps up to and including the first failure are invoked.
    invoked: list[str] = []
    names = ["s1", "s2", "s3", "s4"]
    steps = [
        failing(name, "boom", invoked) if index == failing_index else passing(name, invoked)
        for index, name in enumerate(names)
    ]
    run = harness.build(steps)

    with pytest.raises(RunFailedError):
        await run.run(1)

    assert invoked == names[: failing_index + 1]


@pytest.mark.asyncio
async def test_unclassified_error_is_wrapped_with_original(harness, recorder) -> None:
    # A non-assertion error is reported as unclassified and keeps the raised value.
    async def broken(browser, record) -> None:
        raise KeyError("missing")

    run = harness.build([Step(name="A", fn=broken)], observers=[recorder])

    with pytest.raises(RunFailedError) as info:
        await run.run(1)

    error = info.value.error
    assert error.kind is ErrorKind.UNCLASSIFIED
    assert isinstance(error.original_error, KeyError)
    assert run.last_error is error
    assert ("on_step_error", "A", "unclassified") in recorder.calls


@pytest.mark.asyncio
async def test_once_step_is_skipped_after_first_iteration(harness, recorder) -> None:
    # ONCE steps run on iteration 1 and are silently skipped afterwards.
    invoked: list[str] = []
    steps = [passing("login", invoked, type=StepType.ONCE), passing("browse", invoked)]
    run = harness.build(steps, observers=[recorder])

    await run.run(1)
    first = recorder.step_calls()
    recorder.calls.clear()
    await run.run(2)

    assert invoked == ["login", "browse", "browse"]
    assert ("before_step", "login") in first
    assert recorder.step_calls() == [
        ("before_step", "browse"),
        ("on_step_passed", "browse"),
        ("after_step", "browse"),
    ]


@pytest.mark.asyncio
async def test_once_step_runs_on_default_iteration(harness) -> None:
    # run() without an iteration counts as the first pass.
    invoked: list[str] = []
    run = harness.build([passing("login", invoked, type=StepType.ONCE)])

    await run.run()

    assert invoked == ["login"]


@pytest.mark.asyncio
async def test_step_options_apply_only_inside_the_step(harness) -> None:
    # The overlay is visible inside the step body and the exact snapshot comes back afterwards.
    seen: dict[str, object] = {}

    async def body(browser, record) -> None:
        seen["timeout"] = browser.settings.wait_timeout
        seen["object"] = browser.settings

    class Snapshots(RunObserver):
        def __init__(self) -> None:
            self.seen_before: list[object] = []
            self.seen_after: list[object] = []

        async def before_step(self, *, run, step) -> None:
            self.seen_before.append(run.active_settings)

        async def after_step(self, *, run, step) -> None:
            self.seen_after.append(run.active_settings)

    snapshots = Snapshots()
    run = harness.build([Step(name="slow", fn=body, options={"waitTimeout": 90})], observers=[snapshots])

    await run.run(1)

    assert seen["timeout"] == 90
    assert seen["object"] is not snapshots.seen_before[0]
    assert snapshots.seen_after[0] is snapshots.seen_before[0]
    assert run.settings.wait_timeout == 30.0


@pytest.mark.asyncio
async def test_step_options_are_restored_when_step_fails(harness) -> None:
    # A raising step still gets its settings snapshot reinstalled.
    async def body(browser, record) -> None:
        raise RuntimeError("boom")

    run = harness.build([Step(name="bad", fn=body, options={"stepDelay": 5})])

    with pytest.raises(RunFailedError):
        await run.run(1)

    assert harness.browsers[0].settings is run.settings


@pytest.mark.asyncio
async def test_observers_are_called_in_registration_order(harness) -> None:
    # Every hook reaches the first observer before the second.
    calls: list[tuple[object, ...]] = []
    first = RecordingObserver(calls, label="first")
    second = RecordingObserver(calls, label="second")
    run = harness.build([passing("A")], observers=[first, second])

    await run.run(1)

    hooks = [call[1] for call in calls]
    labels = [call[0] for call in calls]
    assert labels == ["first", "second"] * 5
    assert hooks[::2] == ["before", "before_step", "on_step_passed", "after_step", "after"]


@pytest.mark.asyncio
async def test_data_exhaustion_skips_steps_but_fires_after(harness, recorder) -> None:
    # An empty feed fails the iteration before any step hook.
    invoked: list[str] = []
    run = harness.build([passing("A", invoked)], data=InMemoryDataSource([]), observers=[recorder])

    with pytest.raises(DataExhaustedError, match="consider making it circular"):
        await run.run(1)

    assert invoked == []
    assert recorder.calls == [("before",), ("after",)]
    assert run.outcome is RunPhase.FAILED
    assert harness.driver_calls("detach") == [("detach", "page-1")]


@pytest.mark.asyncio
async def test_step_receives_record_for_the_iteration(harness) -> None:
    # Records are fed one per run in order.
    seen: list[object] = []

    async def body(browser, record) -> None:
        seen.append(record)

    data = InMemoryDataSource([{"user": "a"}, {"user": "b"}])
    run = harness.build([Step(name="A", fn=body)], data=data)

    await run.run(1)
    await run.run(2)

    assert seen == [{"user": "a"}, {"user": "b"}]


@pytest.mark.asyncio
async def test_browser_setup_follows_settings_in_fixed_order(harness) -> None:
    # Page reopen and interceptor attach come first, then the browser configuration.
    settings = RunSettings(
        name="setup",
        incognito=True,
        clear_cache=True,
        clear_cookies=True,
        device="iPhone X",
        user_agent="bot/1.0",
        disable_cache=True,
        extra_http_headers={"X-Test": "1"},
    )
    run = harness.build([passing("A")], settings=settings)

    await run.run(1)

    assert harness.calls == [
        ("reopen_page", True),
        ("attach", "page-1"),
        ("clear_browser_cache",),
        ("clear_browser_cookies",),
        ("emulate_device", "iPhone X"),
        ("set_user_agent", "bot/1.0"),
        ("set_cache_disabled", True),
        ("set_extra_http_headers", {"X-Test": "1"}),
        ("detach", "page-1"),
    ]


@pytest.mark.asyncio
async def test_default_settings_skip_optional_browser_setup(harness) -> None:
    # Nothing beyond reopen/attach/detach runs when no option is set.
    run = harness.build([passing("A")])

    await run.run(1)

    assert harness.calls == [("reopen_page", False), ("attach", "page-1"), ("detach", "page-1")]


@pytest.mark.asyncio
async def test_setup_failure_detaches_and_skips_observers(harness, recorder) -> None:
    # A driver error after attach still detaches; before never completed so after stays silent.
    harness.fail_on = "emulate_device"
    run = harness.build([passing("A")], settings=RunSettings(device="Pixel"), observers=[recorder])

    with pytest.raises(RuntimeError, match="emulate_device failed"):
        await run.run(1)

    assert recorder.calls == []
    assert harness.driver_calls("detach") == [("detach", "page-1")]
    assert run.outcome is RunPhase.FAILED
    assert run.running_browser is None


@pytest.mark.asyncio
async def test_interceptor_is_built_from_blocked_domains_override(harness) -> None:
    # Construction-time overrides feed the interceptor factory.
    run = harness.build([passing("A")], override={"blockedDomains": ["ads.example"]})

    assert harness.interceptors[0].blocked_domains == ("ads.example",)
    assert run.settings.blocked_domains == ("ads.example",)


@pytest.mark.asyncio
async def test_browser_actions_reach_action_hooks_with_step_context(harness, recorder) -> None:
    # Sub-actions performed by the browser are reported between before_step and the verdict.
    async def body(browser, record) -> None:
        await browser.visit("https://example.test/")

    run = harness.build([Step(name="open", fn=body)], observers=[recorder])

    await run.run(1)

    assert recorder.step_calls() == [
        ("before_step", "open"),
        ("before_step_action", "open", "visit"),
        ("after_step_action", "open", "visit"),
        ("on_step_passed", "open"),
        ("after_step", "open"),
    ]


@pytest.mark.asyncio
async def test_step_delay_follows_passed_steps_only(harness, monkeypatch) -> None:
    # The inter-step pause is skipped once the run is failing.
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    monkeypatch.setattr("stepwise.kernel.sequencer.asyncio.sleep", fake_sleep)
    run = harness.build([passing("A"), passing("B"), failing("C", "boom")], settings=RunSettings(step_delay=1.5))

    with pytest.raises(RunFailedError):
        await run.run(1)

    assert delays == [1.5, 1.5]


@pytest.mark.asyncio
async def test_current_url_and_active_settings_follow_the_run(harness) -> None:
    # While running these reflect the browser; afterwards they fall back to defaults.
    seen: dict[str, object] = {}

    async def body(browser, record) -> None:
        seen["url"] = run.current_url
        seen["timeout"] = run.active_settings.wait_timeout

    run = harness.build([Step(name="A", fn=body, options={"wait_timeout": 5})])

    await run.run(1)

    assert seen == {"url": "https://example.test/home", "timeout": 5}
    assert run.current_url == ""
    assert run.active_settings is run.settings


@pytest.mark.asyncio
async def test_screenshots_go_through_the_running_browser(harness) -> None:
    # Screenshot helpers are no-ops outside a run.
    captured: list[list[str]] = []

    async def body(browser, record) -> None:
        await run.take_screenshot()
        captured.append(await run.fetch_screenshots())

    run = harness.build([Step(name="A", fn=body)])

    await run.run(1)

    assert captured == [["shot-1.png"]]
    assert await run.fetch_screenshots() == []


@pytest.mark.asyncio
async def test_before_run_calls_script_hook(harness) -> None:
    # The per-test hook runs only when asked.
    calls: list[str] = []

    async def prepare() -> None:
        calls.append("prepare")

    run = harness.build([passing("A")], before_test_run=prepare)

    await run.before_run()
    await run.run(1)

    assert calls == ["prepare"]


@pytest.mark.asyncio
async def test_before_run_without_hook_is_noop(harness) -> None:
    run = harness.build([passing("A")])

    await run.before_run()

    assert run.phase is RunPhase.NOT_STARTED


@pytest.mark.asyncio
async def test_starting_a_second_run_while_running_is_rejected(harness) -> None:
    # Runs of one sequencer never overlap.
    started = asyncio.Event()
    release = asyncio.Event()

    async def blocking(browser, record) -> None:
        started.set()
        await release.wait()

    run = harness.build([Step(name="A", fn=blocking)])
    task = asyncio.create_task(run.run(1))
    await started.wait()

    with pytest.raises(InvalidRunTransition):
        await run.run(2)

    release.set()
    await task
    assert run.outcome is RunPhase.PASSED


@pytest.mark.asyncio
async def test_failed_flag_resets_on_next_run(harness) -> None:
    # A new run starts clean even after a failure.
    outcomes = iter([RuntimeError("boom"), None])

    async def flaky(browser, record) -> None:
        error = next(outcomes)
        if error is not None:
            raise error

    run = harness.build([Step(name="A", fn=flaky)])

    with pytest.raises(RunFailedError):
        await run.run(1)
    await run.run(2)

    assert run.failed is False
    assert run.outcome is RunPhase.PASSED
    assert run.step_names == ["A"]


@pytest.mark.asyncio
async def test_run_logs_lifecycle_with_test_name(harness) -> None:
    # Sequencer log lines carry the test name.
    messages = []

    class Sink:
        def emit(self, message) -> None:
            messages.append(message)

    run = harness.build([failing("A", "boom")], settings=RunSettings(name="checkout"), log_sink=Sink())

    with pytest.raises(RunFailedError):
        await run.run(1)

    texts = [message.message for message in messages]
    assert texts[0] == "run started"
    assert "failed, bailing out of steps" in texts
    assert texts[-1] == "run finished"
    assert all(message.fields["test"] == "checkout" for message in messages)
