"""tracer: execute, analyze, report and compare critical paths."""

from critpath.tracer.analyze import analyze_bottlenecks
from critpath.tracer.compare import (
    PathComparison,
    compare_paths,
    render_comparison,
)
from critpath.tracer.engine import execute_path
from critpath.tracer.monitor import Monitor, start_monitoring
from critpath.tracer.recommend import generate_recommendations
from critpath.tracer.report import (
    load_trace,
    persist_trace,
    render_trace,
    save_trace,
    trace_from_record,
)
from critpath.tracer.trace import trace_path

__all__ = [
    "Monitor",
    "PathComparison",
    "analyze_bottlenecks",
    "compare_paths",
    "execute_path",
    "generate_recommendations",
    "load_trace",
    "persist_trace",
    "render_comparison",
    "render_trace",
    "save_trace",
    "start_monitoring",
    "trace_from_record",
    "trace_path",
]
