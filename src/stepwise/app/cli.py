from __future__ import annotations

import argparse
import asyncio
import importlib
from collections.abc import Sequence
from pathlib import Path
from types import ModuleType

from stepwise.app.runtime import IterationSummary, run_iterations
from stepwise.config.loader import load_config
from stepwise.kernel.composition_root import build_runtime
from stepwise.kernel.script import Script
from stepwise.kernel.script_builder import ScriptBuilder
from stepwise.kernel.settings import merge_settings, setting_field_name
from stepwise.kernel.step import StepType
from stepwise.kernel.step_registry import StepRegistry
from stepwise.observability.logging import LOG_LEVELS

# The steps module is the only project-specific piece: it registers step functions and,
# for real runs, supplies the driver through create_driver() -> DriverRuntime.


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stepwise", description="Run a scripted browser test")
    parser.add_argument("--config", required=True, help="Path to YAML script file")
    parser.add_argument("--steps-module", required=True, help="Importable module exposing register_steps()")
    parser.add_argument("--iterations", type=int, help="Override settings.loop_count")
    parser.add_argument("--dry-run", action="store_true", help="Print the resolved plan without a driver")
    parser.add_argument("--report-path", help="Write step records as JSONL to this file")
    parser.add_argument("--log-path", help="Also write structured logs as JSONL to this file")
    parser.add_argument("--log-level", choices=list(LOG_LEVELS), default="info")
    return parser


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    # Caller passes argv for testability.
    return build_parser().parse_args(argv)


def load_steps_module(name: str) -> ModuleType:
    module = importlib.import_module(name)
    if not callable(getattr(module, "register_steps", None)):
        raise ValueError(f"Steps module '{name}' must define register_steps(registry)")
    return module


def resolve_iterations(script: Script, override: int | None) -> int | None:
    # loop_count -1 means "until the data runs out"; 0 is treated as a single pass.
    if override is not None:
        if override < 1:
            raise ValueError("--iterations must be >= 1")
        return override
    if script.settings.loop_count < 0:
        return None
    return max(1, script.settings.loop_count)


def describe_plan(script: Script) -> list[str]:
    lines = [f"test: {script.settings.name}"]
    for index, step in enumerate(script.steps, start=1):
        marker = " (once)" if step.type is StepType.ONCE else ""
        lines.append(f"{index}. {step.name}{marker}")
        if step.options:
            effective = merge_settings(script.settings, step.options)
            for key in sorted(step.options):
                lines.append(f"   {key} = {getattr(effective, setting_field_name(type(effective), key))!r}")
    return lines


def format_summary(summary: IterationSummary) -> str:
    status = "ok" if summary.ok else "failed"
    return (
        f"{status}: {summary.completed} iteration(s), {summary.passed} passed, {summary.failed} failed"
        + (", stopped early" if summary.stopped_early else "")
    )


def run(argv: Sequence[str] | None = None) -> int:
    # Thin orchestration wrapper; behaviour lives in the kernel and app.runtime.
    args = parse_args(argv)
    config = load_config(Path(args.config))
    module = load_steps_module(args.steps_module)
    registry = StepRegistry()
    module.register_steps(registry)
    script = ScriptBuilder(registry).build(config)

    if args.dry_run:
        for line in describe_plan(script):
            print(line)
        return 0

    create_driver = getattr(module, "create_driver", None)
    if not callable(create_driver):
        raise ValueError(f"Steps module '{args.steps_module}' must define create_driver() for real runs")

    runtime = build_runtime(
        script=script,
        driver=create_driver(),
        report_path=Path(args.report_path) if args.report_path else None,
        log_path=Path(args.log_path) if args.log_path else None,
        log_level=args.log_level,
    )
    try:
        summary = asyncio.run(run_iterations(runtime.sequencer, resolve_iterations(script, args.iterations)))
    finally:
        runtime.close()
    print(format_summary(summary))
    return 0 if summary.ok else 1
