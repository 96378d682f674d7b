import logging
import threading
from collections.abc import Sequence

from critpath.core.config import TracerConfig
from critpath.core.models import Parallel, Step, Trace
from critpath.tracer.engine import validate_path
from critpath.tracer.trace import trace_path

logger = logging.getLogger(__name__)

DEFAULT_MONITOR_INTERVAL_SEC = 30.0


class Monitor:
    """Re-traces one path on a background thread until stopped.

    Every run is persisted. Only the most recent trace is kept in memory.
    """

    def __init__(
        self,
        name: str,
        steps: Sequence[Step | Parallel],
        interval_sec: float = DEFAULT_MONITOR_INTERVAL_SEC,
        config: TracerConfig | None = None,
    ) -> None:
        if interval_sec < 0:
            raise ValueError("interval_sec must be >= 0")
        validate_path(steps)
        self.name = name
        self.steps = list(steps)
        self.interval_sec = interval_sec
        self.config = config if config is not None else TracerConfig()
        self.traces_run = 0
        self.last_trace: Trace | None = None
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name=f"critpath-monitor-{name}", daemon=True
        )

    def start(self) -> "Monitor":
        self._thread.start()
        return self

    def _run(self) -> None:
        while not self._stop.is_set():
            self.last_trace = trace_path(
                self.name, self.steps, config=self.config, save_results=True
            )
            self.traces_run += 1
            self._stop.wait(self.interval_sec)
        logger.info(
            "Stopped monitoring %s after %d traces", self.name, self.traces_run
        )

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()


def start_monitoring(
    name: str,
    steps: Sequence[Step | Parallel],
    interval_sec: float = DEFAULT_MONITOR_INTERVAL_SEC,
    *,
    config: TracerConfig | None = None,
) -> Monitor:
    logger.info("Monitoring %s every %ss", name, interval_sec)
    return Monitor(name, steps, interval_sec, config).start()
