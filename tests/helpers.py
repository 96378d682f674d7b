import time
from datetime import datetime, timezone
from typing import Any

from critpath.core.models import (
    StepError,
    StepErrorKind,
    StepResult,
    Trace,
)
from critpath.tracer.analyze import analyze_bottlenecks
from critpath.tracer.recommend import generate_recommendations


def make_result(
    name: str,
    duration_us: int,
    *,
    error: StepError | None = None,
    memory_delta: int = 0,
) -> StepResult:
    return StepResult(
        name=name,
        duration_us=duration_us,
        error=error,
        memory_delta=memory_delta,
        timestamp=datetime.now(timezone.utc),
    )


def make_error(message: str = "boom") -> StepError:
    return StepError(kind=StepErrorKind.EXCEPTION, message=message)


def make_trace(
    steps: list[StepResult], name: str = "Synthetic", **metadata: Any
) -> Trace:
    total = sum(step.duration_us for step in steps)
    draft = Trace(
        name=name,
        steps=tuple(steps),
        total_duration_us=total,
        bottlenecks=tuple(analyze_bottlenecks(steps, total)),
        metadata=metadata,
        started_at=datetime.now(timezone.utc),
    )
    return draft.model_copy(
        update={"recommendations": tuple(generate_recommendations(draft))}
    )


def sleeper(ms: float, value: Any = None):
    def operation() -> Any:
        time.sleep(ms / 1000)
        return value

    return operation
