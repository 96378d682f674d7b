class CritPathError(Exception):
    """Base class for critpath errors."""


class StepSpecError(CritPathError, ValueError):
    """Raised when a path contains something that is not a valid step."""


class GroupTimeoutError(CritPathError, TimeoutError):
    """Recorded when a parallel group does not join within its bound."""

    def __init__(self, group_name: str, timeout_sec: float) -> None:
        super().__init__(
            f"parallel group '{group_name}' timed out after {timeout_sec}s"
        )
        self.group_name = group_name
        self.timeout_sec = timeout_sec


class PersistenceError(CritPathError, OSError):
    """Raised when a trace record cannot be written to its sink."""
