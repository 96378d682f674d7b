"""Rendering and persistence of completed traces."""

import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import srsly
from pydantic_core import to_jsonable_python

from critpath.core.config import DEFAULT_RESULTS_DIR
from critpath.core.errors import PersistenceError
from critpath.core.formatting import format_duration, format_memory
from critpath.core.models import Severity, Trace

logger = logging.getLogger(__name__)

_RULE = "═" * 78
_SEVERITY_ICONS = {
    Severity.CRITICAL: "🚨",
    Severity.MAJOR: "⚠️",
    Severity.MINOR: "💡",
}
_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def render_trace(trace: Trace) -> str:
    lines = [
        f"╔{_RULE}╗",
        f"║ CRITICAL PATH ANALYSIS: {trace.name}",
        f"╠{_RULE}╣",
        f"║ Total Duration: {format_duration(trace.total_duration_us)}",
        f"║ Steps Analyzed: {len(trace.steps)}",
        f"║ Bottlenecks Found: {len(trace.bottlenecks)}",
    ]

    if trace.bottlenecks:
        lines += ["║", "║ PERFORMANCE BOTTLENECKS:"]
        for b in trace.bottlenecks:
            icon = _SEVERITY_ICONS[b.severity]
            lines.append(
                f"║ {icon} [{b.severity.value}] {b.step_name}: "
                f"{format_duration(b.duration_us)} ({b.percentage}%)"
            )

    if trace.recommendations:
        lines += ["║", "║ OPTIMIZATION RECOMMENDATIONS:"]
        lines += [f"║ - {rec}" for rec in trace.recommendations]

    lines += ["║", "║ DETAILED STEP BREAKDOWN:"]
    for step in trace.steps:
        status = "✅" if step.error is None else "❌"
        memory_info = ""
        if step.memory_delta != 0:
            memory_info = f" ({format_memory(step.memory_delta)})"
        line = (
            f"║ {status} {step.name}: "
            f"{format_duration(step.duration_us)}{memory_info}"
        )
        if step.is_parallel:
            line += f" [parallel x{step.parallel_count}]"
        if step.error is not None:
            line += f" [failed: {step.error.message}]"
        lines.append(line)

    lines.append(f"╚{_RULE}╝")
    return "\n".join(lines)


def sanitize_trace_name(name: str) -> str:
    return _UNSAFE_NAME_RE.sub("_", name).strip("_") or "trace"


def trace_record(trace: Trace, timestamp: datetime) -> dict[str, Any]:
    """JSON-ready record of a trace; unserializable values become strings."""
    record = {
        "name": trace.name,
        "timestamp": timestamp,
        "total_duration_us": trace.total_duration_us,
        "steps": [step.model_dump() for step in trace.steps],
        "bottlenecks": [b.model_dump() for b in trace.bottlenecks],
        "recommendations": list(trace.recommendations),
        "metadata": dict(trace.metadata),
    }
    return to_jsonable_python(record, serialize_unknown=True)


def _write_record(destination: Path, record: dict[str, Any]) -> None:
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(srsly.json_dumps(record, indent=2))
        os.replace(tmp_path, destination)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


def save_trace(
    trace: Trace, results_dir: Path | str = DEFAULT_RESULTS_DIR
) -> Path:
    """Write a trace record, raising PersistenceError on failure."""
    results_dir = Path(results_dir)
    timestamp = datetime.now(timezone.utc)
    stamp = timestamp.strftime("%Y%m%dT%H%M%S.%fZ")
    filename = f"{sanitize_trace_name(trace.name)}_{stamp}.json"
    destination = results_dir / filename
    try:
        results_dir.mkdir(parents=True, exist_ok=True)
        _write_record(destination, trace_record(trace, timestamp))
    except (OSError, TypeError, ValueError) as err:
        raise PersistenceError(
            f"could not save trace '{trace.name}' to {destination}: {err}"
        ) from err
    return destination


def persist_trace(
    trace: Trace, results_dir: Path | str = DEFAULT_RESULTS_DIR
) -> Path | None:
    """Save a trace, logging instead of raising when the write fails."""
    try:
        destination = save_trace(trace, results_dir)
    except PersistenceError as err:
        logger.warning("%s", err)
        return None
    logger.info("Trace results saved to %s", destination)
    return destination


def trace_from_record(record: dict[str, Any]) -> Trace:
    """Rebuild a trace from a persisted record. Error causes are not kept."""
    if not isinstance(record, dict) or "timestamp" not in record:
        raise ValueError("trace record must be an object with a timestamp")
    fields = {k: v for k, v in record.items() if k != "timestamp"}
    return Trace.model_validate(
        {
            **fields,
            "started_at": record["timestamp"],
            "metadata": record.get("metadata") or {},
        }
    )


def load_trace(path: Path | str) -> Trace:
    return trace_from_record(srsly.read_json(path))
