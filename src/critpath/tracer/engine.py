"""Execution engine: runs a path step by step and measures each step."""

import logging
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any

from critpath.core.config import TracerConfig
from critpath.core.errors import GroupTimeoutError, StepSpecError
from critpath.core.formatting import format_duration
from critpath.core.models import (
    Err,
    Ok,
    Operation,
    Parallel,
    Step,
    StepError,
    StepErrorKind,
    StepResult,
)

logger = logging.getLogger(__name__)


def _now_us() -> int:
    return time.perf_counter_ns() // 1_000


def _invoke(operation: Operation) -> tuple[Any, StepError | None]:
    try:
        outcome = operation()
    except Exception as exc:
        return None, StepError.from_exception(exc)
    if isinstance(outcome, Err):
        return None, StepError.from_reason(outcome.reason)
    if isinstance(outcome, Ok):
        return outcome.value, None
    return outcome, None


def _sample_memory(config: TracerConfig, step_name: str) -> int | None:
    try:
        return config.memory_sampler()
    except Exception as exc:
        logger.warning(
            "Memory sampling failed around %s: %s", step_name, exc
        )
        return None


def _memory_delta(before: int | None, after: int | None) -> int:
    if before is None or after is None:
        return 0
    return after - before


def validate_path(steps: Sequence[Any]) -> None:
    """Reject malformed paths before anything runs."""
    if isinstance(steps, str | bytes) or not isinstance(steps, Sequence):
        raise StepSpecError(
            f"path must be a sequence of steps, got {type(steps).__name__}"
        )
    for index, spec in enumerate(steps):
        if not isinstance(spec, Step | Parallel):
            raise StepSpecError(
                f"step {index} is {type(spec).__name__}, "
                "expected Step or Parallel"
            )


def _measure_step(spec: Step, config: TracerConfig) -> StepResult:
    logger.debug("Running step %s", spec.name)
    memory_before = _sample_memory(config, spec.name)
    start = _now_us()
    value, error = _invoke(spec.operation)
    duration_us = max(0, _now_us() - start)
    memory_after = _sample_memory(config, spec.name)

    if error is None:
        logger.info(
            "Step %s succeeded in %s", spec.name, format_duration(duration_us)
        )
    else:
        logger.warning(
            "Step %s failed in %s: %s",
            spec.name,
            format_duration(duration_us),
            error.message,
        )
    return StepResult(
        name=spec.name,
        duration_us=duration_us,
        value=value,
        error=error,
        memory_delta=_memory_delta(memory_before, memory_after),
        timestamp=datetime.now(timezone.utc),
    )


def _collect_member(
    future: Future, done: set[Future], timeout_sec: float
) -> tuple[Any, StepError | None]:
    if future not in done:
        return None, StepError(
            kind=StepErrorKind.TIMEOUT,
            message=f"operation did not finish within {timeout_sec}s",
            error_type=TimeoutError.__name__,
        )
    return future.result()


def _measure_parallel(spec: Parallel, config: TracerConfig) -> StepResult:
    count = len(spec.operations)
    logger.debug("Running parallel group %s (%d operations)", spec.name, count)
    workers = count
    if config.max_parallel_workers is not None:
        workers = min(count, config.max_parallel_workers)

    memory_before = _sample_memory(config, spec.name)
    start = _now_us()
    executor = ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix="critpath-parallel"
    )
    try:
        futures = [executor.submit(_invoke, op) for op in spec.operations]
        done, not_done = wait(futures, timeout=config.group_timeout_sec)
    finally:
        # Hung members cannot be interrupted; stop waiting on them.
        executor.shutdown(wait=False, cancel_futures=True)
    duration_us = max(0, _now_us() - start)
    memory_after = _sample_memory(config, spec.name)

    members = [
        _collect_member(future, done, config.group_timeout_sec)
        for future in futures
    ]
    values = tuple(value for value, _ in members)
    sub_errors = tuple(error for _, error in members if error is not None)

    error: StepError | None = None
    if not_done:
        error = StepError.from_exception(
            GroupTimeoutError(spec.name, config.group_timeout_sec),
            StepErrorKind.TIMEOUT,
        )
    elif sub_errors:
        error = StepError(
            kind=StepErrorKind.GROUP_FAILURE,
            message=(
                f"{len(sub_errors)} of {count} parallel operations failed: "
                + "; ".join(sub.message for sub in sub_errors)
            ),
            cause=sub_errors,
        )

    if error is None:
        logger.info(
            "Parallel group %s completed in %s",
            spec.name,
            format_duration(duration_us),
        )
    else:
        logger.warning(
            "Parallel group %s completed in %s with errors: %s",
            spec.name,
            format_duration(duration_us),
            error.message,
        )
    return StepResult(
        name=spec.name,
        duration_us=duration_us,
        value=values,
        error=error,
        memory_delta=_memory_delta(memory_before, memory_after),
        timestamp=datetime.now(timezone.utc),
        is_parallel=True,
        parallel_count=count,
        sub_errors=sub_errors,
    )


def execute_path(
    steps: Sequence[Step | Parallel],
    config: TracerConfig | None = None,
) -> list[StepResult]:
    """Run every step in order and return one result per step.

    Failures inside operations are recorded on the result and never
    propagate. Only a malformed path raises, and it does so before any
    step runs.
    """
    if config is None:
        config = TracerConfig()
    validate_path(steps)

    results: list[StepResult] = []
    for spec in steps:
        match spec:
            case Step():
                results.append(_measure_step(spec, config))
            case Parallel():
                results.append(_measure_parallel(spec, config))
    return results
