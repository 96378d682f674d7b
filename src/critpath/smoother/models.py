from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from critpath.core.config import TracerConfig
from critpath.core.models import Trace


class SmootherConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    optimization_threshold: float = Field(
        default=0.75,
        gt=0,
        le=1,
        description="Share of a path's time that marks a step for optimizing",
    )
    target_improvement: float = Field(
        default=0.90,
        gt=0,
        le=1,
        description="Iteration-over-iteration improvement that ends the run",
    )
    iteration_limit: int = Field(default=10, ge=1)
    pause_sec: float = Field(
        default=0.1, ge=0, description="Pause between iterations"
    )
    time_scale: float = Field(
        default=1.0, gt=0, description="Multiplier on every simulated cost"
    )
    tracer: TracerConfig = Field(default_factory=TracerConfig)


class PathBottleneck(BaseModel):
    model_config = ConfigDict(frozen=True)

    path_name: str
    step_name: str
    duration_ms: float
    percentage: float


class SmootherState(BaseModel):
    """Mutable loop state for one smoothing run."""

    iteration: int = Field(default=1, ge=1)
    total_time: float = Field(default=0.0, ge=0, description="Milliseconds")
    bottlenecks: list[PathBottleneck] = Field(default_factory=list)
    optimizations_applied_count: int = Field(default=0, ge=0)
    traces: list[Trace] = Field(default_factory=list)


class IterationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    iteration: int
    total_time: float
    bottleneck_count: int
    optimizations: list[str] = Field(
        default_factory=list, description="Labels applied this iteration"
    )
    optimizations_applied_count: int
    improvement: float


class SmoothingOutcome(str, Enum):
    CONVERGED = "converged"
    ITERATION_LIMIT_REACHED = "iteration_limit_reached"


class SmoothingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: SmoothingOutcome
    iteration: int
    total_time: float
    bottlenecks: list[PathBottleneck]
    traces: list[Trace]
    optimizations_applied_count: int
    improvement: float
    history: list[IterationRecord]
    summary: str = ""
