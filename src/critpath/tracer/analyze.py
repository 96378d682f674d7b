from collections.abc import Sequence

from critpath.core.models import Bottleneck, Severity, StepResult

CRITICAL_PERCENTAGE = 40.0
MAJOR_PERCENTAGE = 20.0
MINOR_PERCENTAGE = 10.0


def classify_percentage(percentage: float) -> Severity | None:
    """Map a share of total duration to a severity; None below the floor."""
    if percentage > CRITICAL_PERCENTAGE:
        return Severity.CRITICAL
    if percentage > MAJOR_PERCENTAGE:
        return Severity.MAJOR
    if percentage > MINOR_PERCENTAGE:
        return Severity.MINOR
    return None


def analyze_bottlenecks(
    steps: Sequence[StepResult], total_duration_us: int
) -> list[Bottleneck]:
    """Classify steps by share of total time, slowest first.

    Steps at or below the minor floor are dropped. A zero total yields no
    bottlenecks. Equal durations keep their path order.
    """
    if total_duration_us <= 0 or not steps:
        return []

    bottlenecks: list[Bottleneck] = []
    for step in sorted(steps, key=lambda s: s.duration_us, reverse=True):
        percentage = round(step.duration_us / total_duration_us * 100, 1)
        severity = classify_percentage(percentage)
        if severity is None:
            continue
        bottlenecks.append(
            Bottleneck(
                step_name=step.name,
                duration_us=step.duration_us,
                percentage=percentage,
                severity=severity,
                has_error=step.error is not None,
            )
        )
    return bottlenecks
