"""smoother: iteratively re-trace a simulated battery until it is smooth."""

from critpath.smoother.battery import SimulatedOperation, build_battery
from critpath.smoother.loop import (
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

__all__ = [
    "IterationRecord",
    "PathBottleneck",
    "SimulatedOperation",
    "SmootherConfig",
    "SmootherState",
    "SmoothingOutcome",
    "SmoothingResult",
    "build_battery",
    "calculate_improvement",
    "collect_bottlenecks",
    "determine_optimization",
    "render_summary",
    "smooth_critical_paths",
]
