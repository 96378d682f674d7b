import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from critpath.core.config import TracerConfig
from critpath.core.formatting import format_duration
from critpath.core.models import Parallel, Step, Trace
from critpath.tracer.analyze import analyze_bottlenecks
from critpath.tracer.engine import execute_path
from critpath.tracer.recommend import generate_recommendations
from critpath.tracer.report import persist_trace

logger = logging.getLogger(__name__)


def trace_path(
    name: str,
    steps: Sequence[Step | Parallel],
    *,
    config: TracerConfig | None = None,
    metadata: dict[str, Any] | None = None,
    save_results: bool = False,
) -> Trace:
    """Execute a path, then analyze it and attach recommendations."""
    if config is None:
        config = TracerConfig()

    logger.info("Tracing critical path: %s", name)
    started_at = datetime.now(timezone.utc)
    results = execute_path(steps, config)
    total_duration_us = sum(step.duration_us for step in results)

    draft = Trace(
        name=name,
        steps=tuple(results),
        total_duration_us=total_duration_us,
        bottlenecks=tuple(analyze_bottlenecks(results, total_duration_us)),
        metadata=dict(metadata or {}),
        started_at=started_at,
    )
    trace = draft.model_copy(
        update={"recommendations": tuple(generate_recommendations(draft))}
    )
    logger.info(
        "Traced %s in %s with %d bottlenecks",
        name,
        format_duration(total_duration_us),
        len(trace.bottlenecks),
    )

    if save_results:
        persist_trace(trace, config.results_dir)
    return trace
