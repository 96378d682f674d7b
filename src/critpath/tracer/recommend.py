from critpath.core.models import Severity, Trace

SLOW_PATH_US = 5_000_000
MONITOR_PATH_US = 1_000_000
HIGH_MEMORY_BYTES = 50_000_000


def generate_recommendations(trace: Trace) -> list[str]:
    """Derive optimization advice from a trace.

    Each rule contributes at most one line, in a fixed order. Only the
    stricter of the two duration rules fires.
    """
    recommendations: list[str] = []

    bottlenecks = trace.bottlenecks
    critical = [b for b in bottlenecks if b.severity == Severity.CRITICAL]
    major = [b for b in bottlenecks if b.severity == Severity.MAJOR]
    if critical:
        worst = critical[0]
        recommendations.append(
            f"Critical: {worst.step_name} taking {worst.percentage}% of total "
            "time - immediate optimization required"
        )
    if major:
        recommendations.append(
            f"Major bottlenecks detected in {len(major)} steps - "
            "consider optimization"
        )

    if trace.total_duration_us > SLOW_PATH_US:
        recommendations.append(
            "Path taking >5s total - consider breaking into async operations"
        )
    elif trace.total_duration_us > MONITOR_PATH_US:
        recommendations.append("Path taking >1s - monitor for regression")

    if any(step.memory_delta > HIGH_MEMORY_BYTES for step in trace.steps):
        recommendations.append(
            "High memory usage detected - consider streaming or pagination"
        )

    error_steps = trace.error_steps
    if error_steps:
        recommendations.append(
            f"Errors detected in {len(error_steps)} steps - add retry logic "
            "and better error handling"
        )
    return recommendations
