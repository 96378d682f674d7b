def format_duration(microseconds: int | float) -> str:
    """Render a µs duration using the largest unit that keeps it readable."""
    if abs(microseconds) < 1_000:
        return f"{microseconds}μs"
    if abs(microseconds) < 1_000_000:
        return f"{round(microseconds / 1_000, 1)}ms"
    return f"{round(microseconds / 1_000_000, 2)}s"


def format_memory(num_bytes: int) -> str:
    if abs(num_bytes) < 1_024:
        return f"{num_bytes}B"
    if abs(num_bytes) < 1_048_576:
        return f"{round(num_bytes / 1_024, 1)}KB"
    return f"{round(num_bytes / 1_048_576, 1)}MB"
