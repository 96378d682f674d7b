#!/usr/bin/env python
"""Demo: trace, compare and smooth simulated critical paths."""

import logging
import random
import tempfile
import time
from pathlib import Path

from critpath.core.config import TracerConfig
from critpath.core.models import Err, Ok, Parallel, Step
from critpath.smoother.loop import smooth_critical_paths
from critpath.smoother.models import SmootherConfig
from critpath.tracer.collaborators import (
    TTLCache,
    cache_comparison_paths,
    health_check_paths,
)
from critpath.tracer.compare import compare_paths, render_comparison
from critpath.tracer.report import load_trace, render_trace
from critpath.tracer.templates import trace_database_operation
from critpath.tracer.trace import trace_path


def sleep_then(ms: int, value: object) -> Ok:
    time.sleep(ms / 1000)
    return Ok(value=value)


def op(ms: int, value: object = None):
    return lambda: sleep_then(ms, value)


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    rng = random.Random(42)

    with tempfile.TemporaryDirectory() as tmpdir:
        config = TracerConfig(results_dir=Path(tmpdir))

        print("=" * 60)
        print("Demo: Critical Path Tracing")
        print("=" * 60)

        # A checkout flow with one dominant step and one failure
        print("\n--- Trace a checkout flow ---")
        checkout = trace_path(
            "Checkout",
            [
                Step(name="Validate Cart", operation=op(5)),
                Step(name="Query Inventory", operation=op(60)),
                Parallel(
                    name="Notify Services",
                    operations=(op(10), op(15), lambda: Err(reason="503")),
                ),
                Step(name="Render Receipt", operation=op(8)),
            ],
            config=config,
            save_results=True,
        )
        print(render_trace(checkout))

        # Reload what was just persisted
        print("\n--- Reload the persisted record ---")
        [saved] = list(Path(tmpdir).glob("Checkout_*.json"))
        print(f"{saved.name}: {load_trace(saved).total_duration_ms:.1f}ms")

        # Database template around a simulated query
        print("\n--- Database operation template ---")
        db = trace_database_operation(
            "load orders", op(25, [{"id": 1}]), rng=rng, config=config
        )
        print(render_trace(db))

        # Sequential vs fan-out health checks
        print("\n--- Compare health check strategies ---")
        checks = [("db", op(20, True)), ("cache", op(10, True))]
        checks.append(("search", op(30, True)))
        comparison = compare_paths(health_check_paths(checks), config=config)
        print(render_comparison(comparison))

        # Direct vs warm cache
        print("\n--- Compare direct and cached fetches ---")
        cache = TTLCache(ttl_ms=5_000)
        cache.put("users", ["ada", "grace"])
        paths = cache_comparison_paths(cache, [("users", op(40, ["ada"]))])
        print(render_comparison(compare_paths(paths, config=config)))

        # Iterative smoothing, scaled down to run quickly
        print("\n--- Smooth the simulated battery ---")
        result = smooth_critical_paths(
            SmootherConfig(
                iteration_limit=5,
                time_scale=0.25,
                pause_sec=0,
                tracer=config,
            )
        )
        print(result.summary)


if __name__ == "__main__":
    main()
