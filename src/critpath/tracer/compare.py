import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from critpath.core.config import TracerConfig
from critpath.core.formatting import format_duration
from critpath.core.models import Parallel, Step, Trace
from critpath.tracer.trace import trace_path

logger = logging.getLogger(__name__)


class PathComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    traces: tuple[Trace, ...] = Field(
        description="One trace per path, in input order"
    )
    fastest: Trace
    slowest: Trace
    gap_percentage: float = Field(
        description="How much slower the slowest path is than the fastest"
    )


def gap_percentage(fastest_us: int, slowest_us: int) -> float:
    if fastest_us <= 0:
        return 0.0
    return round((slowest_us - fastest_us) / fastest_us * 100, 1)


def compare_paths(
    paths: Sequence[tuple[str, Sequence[Step | Parallel]]],
    *,
    config: TracerConfig | None = None,
) -> PathComparison:
    """Trace each named path once and rank them by total duration."""
    if not paths:
        raise ValueError("compare_paths requires at least one path")

    logger.info("Comparing %d execution paths", len(paths))
    traces = [
        trace_path(name, steps, config=config, save_results=False)
        for name, steps in paths
    ]
    fastest = min(traces, key=lambda t: t.total_duration_us)
    slowest = max(traces, key=lambda t: t.total_duration_us)
    return PathComparison(
        traces=tuple(traces),
        fastest=fastest,
        slowest=slowest,
        gap_percentage=gap_percentage(
            fastest.total_duration_us, slowest.total_duration_us
        ),
    )


def render_comparison(comparison: PathComparison) -> str:
    fastest = comparison.fastest
    slowest = comparison.slowest
    return "\n".join(
        [
            "PATH COMPARISON RESULTS:",
            f"  Fastest: {fastest.name} "
            f"({format_duration(fastest.total_duration_us)})",
            f"  Slowest: {slowest.name} "
            f"({format_duration(slowest.total_duration_us)})",
            f"  Performance Gap: {comparison.gap_percentage}% slower",
        ]
    )
