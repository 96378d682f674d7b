"""Ready-made path shapes for common request, database and view flows.

The surrounding sub-steps are simulated with short randomized sleeps; the
step that matters (the HTTP request, the query, the mount) is supplied by
the caller or performed for real.
"""

import random
import time
from collections.abc import Callable
from typing import Any

import httpx

from critpath.core.config import TracerConfig
from critpath.core.models import Err, Ok, Operation, Step, Trace
from critpath.tracer.trace import trace_path

DEFAULT_REQUEST_TIMEOUT_SEC = 3.0


def _simulated(
    rng: random.Random, base_ms: int, jitter_ms: int, label: str
) -> Operation:
    def operation() -> Ok:
        time.sleep((base_ms + rng.randint(1, jitter_ms)) / 1000)
        return Ok(value=label)

    return operation


def make_http_request(
    method: str,
    url: str,
    client: httpx.Client | None = None,
    timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC,
) -> Ok | Err:
    try:
        if client is None:
            with httpx.Client(timeout=timeout_sec) as owned:
                response = owned.request(method, url)
        else:
            response = client.request(method, url)
    except httpx.HTTPError as err:
        return Err(reason=err)
    if response.is_error:
        return Err(reason=f"HTTP {response.status_code} from {url}")
    return Ok(
        value={
            "status": response.status_code,
            "size": len(response.content),
        }
    )


def trace_endpoint(
    endpoint_name: str,
    method: str,
    url: str,
    *,
    client: httpx.Client | None = None,
    rng: random.Random | None = None,
    config: TracerConfig | None = None,
    save_results: bool = False,
) -> Trace:
    if rng is None:
        rng = random.Random()
    steps = [
        Step(
            name="DNS Resolution",
            operation=_simulated(rng, 5, 10, "resolved"),
        ),
        Step(
            name="TCP Connection",
            operation=_simulated(rng, 10, 20, "connected"),
        ),
        Step(
            name="HTTP Request",
            operation=lambda: make_http_request(method, url, client),
        ),
        Step(
            name="Response Processing",
            operation=_simulated(rng, 5, 15, "processed"),
        ),
    ]
    return trace_path(
        f"{method.upper()} {endpoint_name}",
        steps,
        config=config,
        metadata={"method": method.upper(), "url": url},
        save_results=save_results,
    )


def trace_database_operation(
    operation_name: str,
    query_fn: Callable[[], Any],
    *,
    rng: random.Random | None = None,
    config: TracerConfig | None = None,
    save_results: bool = False,
) -> Trace:
    if rng is None:
        rng = random.Random()
    steps = [
        Step(
            name="Connection Pool",
            operation=_simulated(rng, 1, 5, "connection"),
        ),
        Step(name="Query Execution", operation=query_fn),
        Step(
            name="Result Processing",
            operation=_simulated(rng, 2, 8, "results"),
        ),
        Step(
            name="Connection Return",
            operation=_simulated(rng, 0, 1, "returned"),
        ),
    ]
    return trace_path(
        f"DB: {operation_name}",
        steps,
        config=config,
        save_results=save_results,
    )


def trace_view_lifecycle(
    view_name: str,
    mount_fn: Callable[[], Any],
    *,
    rng: random.Random | None = None,
    config: TracerConfig | None = None,
    save_results: bool = False,
) -> Trace:
    if rng is None:
        rng = random.Random()
    steps = [
        Step(
            name="HTTP Request",
            operation=_simulated(rng, 20, 50, "request_handled"),
        ),
        Step(
            name="Router Dispatch",
            operation=_simulated(rng, 2, 5, "routed"),
        ),
        Step(name="View Mount", operation=mount_fn),
        Step(
            name="Template Render",
            operation=_simulated(rng, 10, 30, "rendered"),
        ),
        Step(
            name="WebSocket Upgrade",
            operation=_simulated(rng, 5, 15, "upgraded"),
        ),
    ]
    return trace_path(
        f"View: {view_name}",
        steps,
        config=config,
        save_results=save_results,
    )
