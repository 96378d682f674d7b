import tempfile
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from critpath.core.memory import sample_memory

DEFAULT_GROUP_TIMEOUT_SEC = 30.0
DEFAULT_RESULTS_DIR = Path(tempfile.gettempdir()) / "critical_path_traces"


class TracerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_timeout_sec: float = Field(
        default=DEFAULT_GROUP_TIMEOUT_SEC,
        gt=0,
        description="Join bound for each parallel group",
    )
    max_parallel_workers: int | None = Field(
        default=None,
        ge=1,
        description="Cap on concurrent members; None runs all at once",
    )
    results_dir: Path = Field(
        default=DEFAULT_RESULTS_DIR,
        description="Directory persisted trace records are written to",
    )
    memory_sampler: Callable[[], int] = Field(
        default=sample_memory,
        description="Process-wide memory counter, in bytes",
    )
