from collections.abc import Callable, Mapping
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

Operation = Callable[[], Any]


class Ok(BaseModel):
    """Explicit success result an operation may return."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any = None


class Err(BaseModel):
    """Explicit failure result an operation may return instead of raising."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    reason: Any


class Step(BaseModel):
    """A single operation run to completion before the path continues."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["step"] = "step"
    name: str = Field(min_length=1, description="Display name of the step")
    operation: Operation = Field(description="Zero-argument callable")


class Parallel(BaseModel):
    """A group of operations dispatched concurrently and joined together."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["parallel"] = "parallel"
    name: str = Field(min_length=1, description="Display name of the group")
    operations: tuple[Operation, ...] = Field(
        min_length=1, description="Member operations, in reporting order"
    )


StepSpec = Annotated[Step | Parallel, Field(discriminator="kind")]


class StepErrorKind(str, Enum):
    EXCEPTION = "exception"
    ERROR_RESULT = "error_result"
    TIMEOUT = "timeout"
    GROUP_FAILURE = "group_failure"


class StepError(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: StepErrorKind
    message: str
    error_type: str | None = None
    cause: Any = Field(
        default=None,
        exclude=True,
        description="Original exception or error reason",
    )

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        kind: StepErrorKind = StepErrorKind.EXCEPTION,
    ) -> "StepError":
        message = str(exc) or type(exc).__name__
        return cls(
            kind=kind,
            message=message,
            error_type=type(exc).__name__,
            cause=exc,
        )

    @classmethod
    def from_reason(cls, reason: Any) -> "StepError":
        if isinstance(reason, BaseException):
            return cls.from_exception(reason, StepErrorKind.ERROR_RESULT)
        message = reason if isinstance(reason, str) else repr(reason)
        return cls(
            kind=StepErrorKind.ERROR_RESULT,
            message=message,
            error_type=None,
            cause=reason,
        )


class StepResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    duration_us: int = Field(ge=0, description="Wall-clock duration in µs")
    value: Any = Field(
        default=None,
        description="Operation value; member values in order for groups",
    )
    error: StepError | None = None
    memory_delta: int = Field(
        default=0, description="Memory after minus memory before, in bytes"
    )
    timestamp: datetime
    is_parallel: bool = False
    parallel_count: int | None = None
    sub_errors: tuple[StepError, ...] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def duration_ms(self) -> float:
        return self.duration_us / 1000


class Severity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class Bottleneck(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_name: str
    duration_us: int
    percentage: float = Field(
        ge=0, le=100, description="Share of total trace duration"
    )
    severity: Severity
    has_error: bool = False


class Trace(BaseModel):
    """Immutable record of one path execution."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    steps: tuple[StepResult, ...] = ()
    total_duration_us: int = Field(ge=0)
    bottlenecks: tuple[Bottleneck, ...] = ()
    recommendations: tuple[str, ...] = ()
    metadata: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Caller-supplied context, read-only once stored",
    )
    started_at: datetime

    @field_validator("metadata")
    @classmethod
    def _freeze_metadata(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("metadata")
    def _serialize_metadata(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    @property
    def total_duration_ms(self) -> float:
        return self.total_duration_us / 1000

    @property
    def error_steps(self) -> list[StepResult]:
        return [step for step in self.steps if step.error is not None]
