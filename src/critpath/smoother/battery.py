"""The fixed battery of simulated paths the smoother re-traces.

Every operation sleeps for a base cost that shrinks as optimizations
accumulate: ``base_ms * max(0, 1 - applied * decay) * time_scale``.
Each path has one step that dominates it, so the smoother always has
something above the default optimization threshold on the first pass.
"""

import time
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from critpath.core.models import Ok, Operation, Parallel, Step

BatteryPath = list[Step | Parallel]


class SimulatedOperation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    base_ms: float = Field(ge=0)
    decay: float = Field(
        ge=0, description="Cost reduction per applied optimization"
    )

    def factor(self, applied: int) -> float:
        return max(0.0, 1.0 - applied * self.decay)

    def cost_ms(self, applied: int, time_scale: float = 1.0) -> float:
        return self.base_ms * self.factor(applied) * time_scale

    def bind(
        self, applied: Callable[[], int], time_scale: float = 1.0
    ) -> Operation:
        """Operation that reads the applied count when it runs."""

        def operation() -> Ok:
            time.sleep(self.cost_ms(applied(), time_scale) / 1000)
            return Ok(value=self.name)

        return operation


def _op(name: str, base_ms: float, decay: float) -> SimulatedOperation:
    return SimulatedOperation(name=name, base_ms=base_ms, decay=decay)


STARTUP = [
    _op("Load Dependencies", 20, 0.1),
    _op("Compile Modules", 120, 0.15),
    _op("Start Server", 10, 0.06),
]
API_CALLS = [
    _op("Service A", 80, 0.18),
    _op("Service B", 60, 0.18),
    _op("Service C", 70, 0.18),
]
REQUEST_TAIL = [
    _op("Process Responses", 10, 0.15),
    _op("Cache Results", 5, 0.3),
]
DATA_ACCESS = [
    _op("Connection Pool", 5, 0.08),
    _op("Query Execution", 90, 0.25),
    _op("Result Processing", 10, 0.12),
]
ASSET_BUILD = [
    _op("CSS Compilation", 45, 0.2),
    _op("JS Bundling", 70, 0.22),
    _op("Image Optimization", 35, 0.15),
]
ASSET_TAIL = [_op("Digest Generation", 20, 0.1)]

BATTERY_PATH_NAMES = (
    "Application Startup",
    "Request Handling",
    "Data Access",
    "Asset Compilation",
)


def build_battery(
    applied: Callable[[], int], time_scale: float = 1.0
) -> list[tuple[str, BatteryPath]]:
    """Named simulated paths, bound to a live optimization count."""

    def steps(ops: list[SimulatedOperation]) -> list[Step]:
        return [
            Step(name=op.name, operation=op.bind(applied, time_scale))
            for op in ops
        ]

    def group(name: str, ops: list[SimulatedOperation]) -> Parallel:
        return Parallel(
            name=name,
            operations=tuple(op.bind(applied, time_scale) for op in ops),
        )

    return [
        ("Application Startup", steps(STARTUP)),
        (
            "Request Handling",
            [group("Parallel API Calls", API_CALLS), *steps(REQUEST_TAIL)],
        ),
        ("Data Access", steps(DATA_ACCESS)),
        (
            "Asset Compilation",
            [group("Parallel Asset Build", ASSET_BUILD), *steps(ASSET_TAIL)],
        ),
    ]
