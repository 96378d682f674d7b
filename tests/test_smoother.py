import pytest

from critpath.core.models import Parallel, Step
from critpath.smoother.battery import (
    API_CALLS,
    BATTERY_PATH_NAMES,
    SimulatedOperation,
    build_battery,
)
from critpath.smoother.loop import (
    GENERAL_OPTIMIZATION,
    apply_optimizations,
    calculate_improvement,
    collect_bottlenecks,
    determine_optimization,
    render_summary,
    smooth_critical_paths,
)
from critpath.smoother.models import (
    IterationRecord,
    PathBottleneck,
    SmootherConfig,
    SmootherState,
    SmoothingOutcome,
    SmoothingResult,
)
from critpath.tracer.trace import trace_path


def _fast_config(**overrides) -> SmootherConfig:
    values = {"time_scale": 0.2, "pause_sec": 0, "iteration_limit": 3}
    values.update(overrides)
    return SmootherConfig(**values)


class TestDetermineOptimization:
    @pytest.mark.parametrize(
        ("step_name", "expected"),
        [
            ("Load Dependencies", "Implementing lazy loading"),
            ("Compile Modules", "Enabling parallel compilation"),
            ("Query Execution", "Adding database indexes"),
            ("Parallel API Calls", "Implementing response caching"),
            ("Template Render", "Optimizing template compilation"),
            ("Load and Compile", "Implementing lazy loading"),
            ("Start Server", GENERAL_OPTIMIZATION),
            ("query execution", GENERAL_OPTIMIZATION),
        ],
    )
    def test_first_matching_rule_wins(self, step_name, expected) -> None:
        assert determine_optimization(step_name) == expected


class TestCalculateImprovement:
    def test_first_iteration_has_no_improvement(self) -> None:
        assert calculate_improvement(None, 120.0) == 0.0

    def test_zero_previous_is_guarded(self) -> None:
        assert calculate_improvement(0.0, 120.0) == 0.0

    def test_relative_drop(self) -> None:
        assert calculate_improvement(200.0, 50.0) == pytest.approx(0.75)

    def test_regression_is_negative(self) -> None:
        assert calculate_improvement(100.0, 110.0) == pytest.approx(-0.1)


class TestApplyOptimizations:
    def test_counts_one_per_bottleneck(self) -> None:
        state = SmootherState(
            bottlenecks=[
                PathBottleneck(
                    path_name="Startup",
                    step_name="Compile Modules",
                    duration_ms=96.0,
                    percentage=80.0,
                ),
                PathBottleneck(
                    path_name="Data Access",
                    step_name="Query Execution",
                    duration_ms=90.0,
                    percentage=86.0,
                ),
            ],
            optimizations_applied_count=3,
        )
        labels = apply_optimizations(state)
        assert labels == [
            "Enabling parallel compilation",
            "Adding database indexes",
        ]
        assert state.optimizations_applied_count == 5

    def test_no_bottlenecks_changes_nothing(self) -> None:
        state = SmootherState()
        assert apply_optimizations(state) == []
        assert state.optimizations_applied_count == 0


class TestSimulatedOperation:
    def test_factor_clamps_at_zero(self) -> None:
        op = SimulatedOperation(name="X", base_ms=100, decay=0.3)
        assert op.factor(0) == 1.0
        assert op.factor(2) == pytest.approx(0.4)
        assert op.factor(4) == 0.0
        assert op.cost_ms(4) == 0.0

    def test_cost_scales(self) -> None:
        op = SimulatedOperation(name="X", base_ms=100, decay=0.1)
        assert op.cost_ms(1, time_scale=0.5) == pytest.approx(45.0)

    def test_bound_operation_reads_count_when_run(self) -> None:
        applied = [0]
        op = SimulatedOperation(name="X", base_ms=50, decay=1.0)
        bound = op.bind(lambda: applied[0])
        applied[0] = 1
        trace = trace_path("Once", [Step(name="X", operation=bound)])
        assert trace.total_duration_us < 40_000
        assert trace.steps[0].value == "X"


class TestBuildBattery:
    def test_shapes(self) -> None:
        battery = build_battery(lambda: 0, time_scale=0.01)
        assert tuple(name for name, _ in battery) == BATTERY_PATH_NAMES

        paths = dict(battery)
        assert [s.name for s in paths["Application Startup"]] == [
            "Load Dependencies",
            "Compile Modules",
            "Start Server",
        ]
        fan_out, *tail = paths["Request Handling"]
        assert isinstance(fan_out, Parallel)
        assert fan_out.name == "Parallel API Calls"
        assert len(fan_out.operations) == len(API_CALLS)
        assert [s.name for s in tail] == ["Process Responses", "Cache Results"]
        assert isinstance(paths["Asset Compilation"][0], Parallel)


@pytest.mark.slow
class TestCollectBottlenecks:
    def test_dominant_steps_sorted_by_duration(self) -> None:
        battery = build_battery(lambda: 0, time_scale=0.2)
        traces = [trace_path(name, steps) for name, steps in battery]
        found = collect_bottlenecks(traces, 0.75)

        assert "Compile Modules" in {b.step_name for b in found}
        durations = [b.duration_ms for b in found]
        assert durations == sorted(durations, reverse=True)
        assert all(b.percentage >= 75 for b in found)

    def test_nothing_exceeds_full_share(self) -> None:
        battery = build_battery(lambda: 0, time_scale=0.05)
        traces = [trace_path(name, steps) for name, steps in battery]
        assert collect_bottlenecks(traces, 1.0) == []


@pytest.mark.slow
class TestSmoothCriticalPaths:
    def test_terminates_within_limit(self) -> None:
        result = smooth_critical_paths(_fast_config(target_improvement=1.0))

        assert result.outcome == SmoothingOutcome.ITERATION_LIMIT_REACHED
        assert result.iteration == 3
        assert [r.iteration for r in result.history] == [1, 2, 3]
        assert len(result.traces) == 4

    def test_applied_count_never_decreases(self) -> None:
        result = smooth_critical_paths(_fast_config(target_improvement=1.0))
        counts = [r.optimizations_applied_count for r in result.history]
        assert counts == sorted(counts)
        assert result.history[0].bottleneck_count >= 1
        assert result.optimizations_applied_count == counts[-1] > 0

    def test_optimizations_make_the_battery_faster(self) -> None:
        result = smooth_critical_paths(
            _fast_config(target_improvement=0.05, iteration_limit=5)
        )
        assert result.outcome == SmoothingOutcome.CONVERGED
        assert result.iteration == 2
        assert result.improvement >= 0.05
        assert result.history[-1].total_time < result.history[0].total_time

    def test_unreachable_threshold_applies_nothing(self) -> None:
        result = smooth_critical_paths(
            _fast_config(
                optimization_threshold=1.0,
                iteration_limit=2,
                time_scale=0.05,
            )
        )
        assert result.outcome == SmoothingOutcome.ITERATION_LIMIT_REACHED
        assert result.optimizations_applied_count == 0
        assert result.bottlenecks == []
        assert "All bottlenecks resolved!" in result.summary

    @pytest.mark.full
    def test_default_scale_run(self) -> None:
        result = smooth_critical_paths(SmootherConfig(pause_sec=0))
        assert result.iteration <= 10
        assert result.optimizations_applied_count > 0
        assert result.total_time < result.history[0].total_time

    def test_runs_do_not_share_state(self) -> None:
        config = _fast_config(iteration_limit=1, time_scale=0.05)
        first = smooth_critical_paths(config)
        second = smooth_critical_paths(config)
        assert (
            first.history[0].optimizations_applied_count
            == first.history[0].bottleneck_count
        )
        assert (
            second.history[0].optimizations_applied_count
            == second.history[0].bottleneck_count
        )


class TestRenderSummary:
    def _result(self, outcome, bottlenecks) -> SmoothingResult:
        return SmoothingResult(
            outcome=outcome,
            iteration=2,
            total_time=42.25,
            bottlenecks=bottlenecks,
            traces=[],
            optimizations_applied_count=4,
            improvement=0.91,
            history=[
                IterationRecord(
                    iteration=1,
                    total_time=480.0,
                    bottleneck_count=4,
                    optimizations_applied_count=4,
                    improvement=0.0,
                ),
                IterationRecord(
                    iteration=2,
                    total_time=42.25,
                    bottleneck_count=len(bottlenecks),
                    optimizations_applied_count=4,
                    improvement=0.91,
                ),
            ],
        )

    def test_converged_summary(self) -> None:
        summary = render_summary(
            self._result(SmoothingOutcome.CONVERGED, [])
        )
        assert "FINAL OPTIMIZATION SUMMARY" in summary
        assert "Target improvement achieved: 91.0%" in summary
        assert "Iterations Completed: 2" in summary
        assert "Optimizations Applied: 4" in summary
        assert "All bottlenecks resolved! Critical path is smooth." in summary

    def test_limit_summary_lists_remaining(self) -> None:
        remaining = [
            PathBottleneck(
                path_name="Data Access",
                step_name="Query Execution",
                duration_ms=12.34,
                percentage=80.2,
            )
        ]
        summary = render_summary(
            self._result(SmoothingOutcome.ITERATION_LIMIT_REACHED, remaining)
        )
        assert "Reached iteration limit." in summary
        assert "Remaining bottlenecks:" in summary
        assert "Data Access -> Query Execution: 12.3ms (80.2%)" in summary
