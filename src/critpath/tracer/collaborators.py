"""Contracts for the cache and health-check services paths are built from.

The tracer treats both as ordinary operations. This module only defines
their interface, a small in-memory cache, and helpers that turn them into
comparable paths.
"""

import threading
import time
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from critpath.core.models import Ok, Operation, Parallel, Step

DEFAULT_CACHE_TTL_MS = 5_000


class CacheHit(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any


class CacheMiss(BaseModel):
    model_config = ConfigDict(frozen=True)


class CacheService(Protocol):
    def get(self, key: str) -> CacheHit | CacheMiss: ...

    def put(self, key: str, value: Any) -> None: ...

    def clear(self) -> None: ...


class TTLCache:
    """Thread-safe in-memory cache whose entries expire after ``ttl_ms``."""

    def __init__(
        self,
        ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be > 0")
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheHit | CacheMiss:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return CacheMiss()
            value, stored_at = entry
            if (self._clock() - stored_at) * 1000 >= self.ttl_ms:
                del self._entries[key]
                return CacheMiss()
            return CacheHit(value=value)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def cached_fetch(
    cache: CacheService, key: str, fetch: Callable[[], Any]
) -> Ok:
    """Serve ``key`` from the cache, fetching and storing it on a miss."""
    lookup = cache.get(key)
    if isinstance(lookup, CacheHit):
        return Ok(value={"source": "cache", "data": lookup.value})
    data = fetch()
    cache.put(key, data)
    return Ok(value={"source": "fresh", "data": data})


def cache_comparison_paths(
    cache: CacheService, fetchers: Sequence[tuple[str, Callable[[], Any]]]
) -> list[tuple[str, list[Step]]]:
    """Direct and cached variants of the same fetches, ready to compare."""

    def cached(key: str, fetch: Callable[[], Any]) -> Operation:
        return lambda: cached_fetch(cache, key, fetch)

    direct = [
        Step(name=f"Direct {key}", operation=fetch) for key, fetch in fetchers
    ]
    through_cache = [
        Step(name=f"Cached {key}", operation=cached(key, fetch))
        for key, fetch in fetchers
    ]
    return [("Direct API", direct), ("Cached API", through_cache)]


class ServiceHealth(BaseModel):
    service: str
    healthy: bool
    response_time_ms: float = Field(ge=0)
    status: str


class HealthReport(BaseModel):
    results: list[ServiceHealth]
    total_time_ms: float = Field(ge=0)
    healthy_count: int = Field(ge=0)
    total_count: int = Field(ge=0)


class HealthChecker(Protocol):
    def check_all(self) -> HealthReport: ...


def health_check_paths(
    checks: Sequence[tuple[str, Callable[[], Any]]],
) -> list[tuple[str, list[Step] | list[Parallel]]]:
    """Sequential and fan-out variants of the same service checks."""
    if not checks:
        raise ValueError("health_check_paths requires at least one check")
    sequential = [
        Step(name=f"Health Check {service}", operation=check)
        for service, check in checks
    ]
    fan_out = [
        Parallel(
            name="Parallel Health Checks",
            operations=tuple(check for _, check in checks),
        )
    ]
    return [
        ("Sequential Health Checks", sequential),
        ("Parallel Health Checks", fan_out),
    ]
