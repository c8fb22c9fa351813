"""
Allow-partial-failure fan-out.

Every branch runs to completion (or timeout) regardless of its siblings;
the join never fails fast. Outcomes are partitioned into succeeded and
failed so callers can report exactly which backends contributed.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from unified_kms.exception import BackendTimeoutError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    key: str
    value: T | None = None
    error: Exception | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SettledOutcomes(Generic[T]):
    succeeded: list[Outcome[T]] = field(default_factory=list)
    failed: list[Outcome[T]] = field(default_factory=list)

    @property
    def errors(self) -> dict[str, str]:
        return {outcome.key: str(outcome.error) for outcome in self.failed}


async def bounded(
    call: Awaitable[T],
    timeout: float | None,
    *,
    backend: str,
    stage: str,
) -> T:
    """Await ``call`` with a timeout; expiry raises BackendTimeoutError."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except TimeoutError as exc:
        raise BackendTimeoutError(
            f"{stage} timed out after {timeout}s",
            backend=backend,
            stage=stage,
            cause=exc,
        ) from exc


async def _run(
    key: str,
    factory: Callable[[], Awaitable[T]],
    timeout: float | None,
    stage: str,
) -> Outcome[T]:
    started = time.perf_counter()
    try:
        value = await bounded(factory(), timeout, backend=key, stage=stage)
    except Exception as exc:
        return Outcome(key=key, error=exc, duration_ms=(time.perf_counter() - started) * 1000)
    return Outcome(key=key, value=value, duration_ms=(time.perf_counter() - started) * 1000)


async def gather_settled(
    calls: Mapping[str, Callable[[], Awaitable[T]]],
    *,
    timeout: float | None = None,
    stage: str = "fanout",
) -> SettledOutcomes[T]:
    """Run every call concurrently and partition the outcomes in input order."""
    settled: SettledOutcomes[Any] = SettledOutcomes()
    if not calls:
        return settled
    outcomes = await asyncio.gather(
        *(_run(key, factory, timeout, stage) for key, factory in calls.items())
    )
    for outcome in outcomes:
        (settled.succeeded if outcome.ok else settled.failed).append(outcome)
    return settled
