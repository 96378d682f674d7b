import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from critpath.core.config import TracerConfig
from critpath.core.models import Parallel, Step
from critpath.smoother.battery import API_CALLS
from critpath.smoother.loop import smooth_critical_paths
from critpath.smoother.models import SmootherConfig
from critpath.tracer.compare import compare_paths, render_comparison
from critpath.tracer.report import load_trace, render_trace

app = typer.Typer(help="Trace critical paths and smooth their bottlenecks.")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _configure_logging(level: str) -> None:
    normalized = level.strip().upper()
    if normalized not in _LOG_LEVELS:
        raise typer.BadParameter(
            f"Invalid log level '{level}': expected one of "
            + ", ".join(_LOG_LEVELS)
        )
    logging.basicConfig(
        level=getattr(logging, normalized),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


LogLevelOption = Annotated[
    str, typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR")
]
TimeScaleOption = Annotated[
    float,
    typer.Option("--time-scale", help="Multiplier on simulated costs (> 0)"),
]


@app.command()
def smooth(
    iteration_limit: Annotated[
        int, typer.Option("--iteration-limit", help="Maximum iterations")
    ] = 10,
    target_improvement: Annotated[
        float,
        typer.Option(
            "--target-improvement",
            help="Improvement between iterations that ends the run (0, 1]",
        ),
    ] = 0.90,
    optimization_threshold: Annotated[
        float,
        typer.Option(
            "--optimization-threshold",
            help="Share of path time that marks a step for optimizing (0, 1]",
        ),
    ] = 0.75,
    time_scale: TimeScaleOption = 1.0,
    pause: Annotated[
        float, typer.Option("--pause", help="Seconds between iterations")
    ] = 0.1,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Run the smoothing loop over the simulated battery."""
    _configure_logging(log_level)
    try:
        config = SmootherConfig(
            iteration_limit=iteration_limit,
            target_improvement=target_improvement,
            optimization_threshold=optimization_threshold,
            time_scale=time_scale,
            pause_sec=pause,
        )
    except ValidationError as err:
        first_error = err.errors(include_url=False)[0]
        loc = ".".join(str(item) for item in first_error["loc"])
        typer.echo(f"Error: invalid {loc}: {first_error['msg']}", err=True)
        raise typer.Exit(1) from err

    typer.echo("Starting critical path smoothing...")
    result = smooth_critical_paths(config)
    typer.echo(result.summary)
    typer.echo(f"Outcome: {result.outcome.value}")


@app.command("compare-demo")
def compare_demo(
    time_scale: TimeScaleOption = 1.0,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Compare sequential and parallel calls to the same simulated services."""
    _configure_logging(log_level)
    if time_scale <= 0:
        typer.echo("Error: --time-scale must be > 0", err=True)
        raise typer.Exit(1)

    def no_optimizations() -> int:
        return 0

    operations = [op.bind(no_optimizations, time_scale) for op in API_CALLS]
    sequential = [
        Step(name=f"Call {op.name}", operation=bound)
        for op, bound in zip(API_CALLS, operations, strict=True)
    ]
    parallel = [Parallel(name="Parallel Service Calls", operations=operations)]
    comparison = compare_paths(
        [("Sequential Calls", sequential), ("Parallel Calls", parallel)],
        config=TracerConfig(),
    )
    for trace in comparison.traces:
        typer.echo(render_trace(trace))
    typer.echo(render_comparison(comparison))


@app.command()
def show(
    input_file: Annotated[
        Path, typer.Argument(help="Persisted trace JSON file")
    ],
) -> None:
    """Render a persisted trace record."""
    try:
        trace = load_trace(input_file)
    except (OSError, ValueError) as err:
        typer.echo(f"Error: could not load {input_file}: {err}", err=True)
        raise typer.Exit(1) from err
    typer.echo(render_trace(trace))
