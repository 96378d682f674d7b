"""Iterative smoothing: re-trace the battery, optimize, repeat.

Each iteration traces every battery path, collects the steps that dominate
their path, and "applies" one synthetic optimization per such step. The
applied count lives on the run's state and makes every simulated operation
cheaper on the next pass. The run ends once the iteration-over-iteration
improvement reaches the target or the iteration limit is hit.
"""

import logging
import time
from collections.abc import Sequence

from critpath.core.models import Trace
from critpath.smoother.battery import build_battery
from critpath.smoother.models import (
    IterationRecord,
    PathBottleneck,
    SmootherConfig,
    SmootherState,
    SmoothingOutcome,
    SmoothingResult,
)
from critpath.tracer.trace import trace_path

logger = logging.getLogger(__name__)

_OPTIMIZATION_RULES = (
    ("Load", "Implementing lazy loading"),
    ("Compile", "Enabling parallel compilation"),
    ("Query", "Adding database indexes"),
    ("API", "Implementing response caching"),
    ("Render", "Optimizing template compilation"),
)
GENERAL_OPTIMIZATION = "Applying general optimization"


def determine_optimization(step_name: str) -> str:
    for pattern, label in _OPTIMIZATION_RULES:
        if pattern in step_name:
            return label
    return GENERAL_OPTIMIZATION


def collect_bottlenecks(
    traces: Sequence[Trace], threshold: float
) -> list[PathBottleneck]:
    """Steps taking more than ``threshold`` of their path, slowest first."""
    found: list[PathBottleneck] = []
    for trace in traces:
        if trace.total_duration_us <= 0:
            continue
        for step in trace.steps:
            share = step.duration_us / trace.total_duration_us
            if share > threshold:
                found.append(
                    PathBottleneck(
                        path_name=trace.name,
                        step_name=step.name,
                        duration_ms=step.duration_ms,
                        percentage=round(share * 100, 1),
                    )
                )
    found.sort(key=lambda b: b.duration_ms, reverse=True)
    return found


def calculate_improvement(
    previous_total: float | None, current_total: float
) -> float:
    if previous_total is None or previous_total <= 0:
        return 0.0
    return 1.0 - current_total / previous_total


def apply_optimizations(state: SmootherState) -> list[str]:
    labels = []
    for bottleneck in state.bottlenecks:
        label = determine_optimization(bottleneck.step_name)
        logger.info("Optimizing %s: %s", bottleneck.step_name, label)
        labels.append(label)
    state.optimizations_applied_count += len(labels)
    return labels


def smooth_critical_paths(
    config: SmootherConfig | None = None,
) -> SmoothingResult:
    if config is None:
        config = SmootherConfig()

    state = SmootherState()
    battery = build_battery(
        lambda: state.optimizations_applied_count, config.time_scale
    )
    history: list[IterationRecord] = []
    previous_total: float | None = None
    logger.info("Starting critical path smoothing over %d paths", len(battery))

    while True:
        logger.info("Iteration %d: tracing battery", state.iteration)
        state.traces = [
            trace_path(name, steps, config=config.tracer)
            for name, steps in battery
        ]

        state.bottlenecks = collect_bottlenecks(
            state.traces, config.optimization_threshold
        )
        state.total_time = sum(t.total_duration_ms for t in state.traces)
        logger.info(
            "Iteration %d: total time %.1fms, %d bottlenecks",
            state.iteration,
            state.total_time,
            len(state.bottlenecks),
        )

        labels = apply_optimizations(state)
        improvement = calculate_improvement(previous_total, state.total_time)
        history.append(
            IterationRecord(
                iteration=state.iteration,
                total_time=state.total_time,
                bottleneck_count=len(state.bottlenecks),
                optimizations=labels,
                optimizations_applied_count=state.optimizations_applied_count,
                improvement=improvement,
            )
        )

        if improvement >= config.target_improvement:
            outcome = SmoothingOutcome.CONVERGED
            logger.info(
                "Target improvement achieved: %.1f%%", improvement * 100
            )
            break
        if state.iteration >= config.iteration_limit:
            outcome = SmoothingOutcome.ITERATION_LIMIT_REACHED
            logger.info("Reached iteration limit of %d", config.iteration_limit)
            break

        logger.info(
            "Improvement %.1f%%, continuing optimization", improvement * 100
        )
        previous_total = state.total_time
        state.iteration += 1
        if config.pause_sec > 0:
            time.sleep(config.pause_sec)

    result = SmoothingResult(
        outcome=outcome,
        iteration=state.iteration,
        total_time=state.total_time,
        bottlenecks=list(state.bottlenecks),
        traces=list(state.traces),
        optimizations_applied_count=state.optimizations_applied_count,
        improvement=improvement,
        history=history,
    )
    return result.model_copy(update={"summary": render_summary(result)})


def render_summary(result: SmoothingResult) -> str:
    rule = "=" * 80
    if result.outcome == SmoothingOutcome.CONVERGED:
        headline = (
            "Target improvement achieved: "
            f"{round(result.improvement * 100, 1)}%"
        )
    else:
        headline = "Reached iteration limit."

    lines = [
        rule,
        "FINAL OPTIMIZATION SUMMARY",
        rule,
        headline,
        "",
        "Iterations:",
    ]
    for record in result.history:
        lines.append(
            f"  {record.iteration:>3}: {record.total_time:.1f}ms, "
            f"{record.bottleneck_count} bottlenecks, "
            f"improvement {round(record.improvement * 100, 1)}%"
        )
    lines += [
        "",
        "Performance Metrics:",
        f"  - Final Total Time: {round(result.total_time, 1)}ms",
        f"  - Iterations Completed: {result.iteration}",
        f"  - Optimizations Applied: {result.optimizations_applied_count}",
        "",
    ]
    if not result.bottlenecks:
        lines.append("All bottlenecks resolved! Critical path is smooth.")
    else:
        lines.append("Remaining bottlenecks:")
        for b in result.bottlenecks:
            lines.append(
                f"  - {b.path_name} -> {b.step_name}: "
                f"{round(b.duration_ms, 1)}ms ({b.percentage}%)"
            )
    lines.append(rule)
    return "\n".join(lines)
