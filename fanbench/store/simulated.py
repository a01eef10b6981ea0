"""
In-process stand-ins for a relational store.

SimulatedStore sleeps for a configured latency per statement and returns canned
rows, which is enough to measure orchestration overhead without a database.
InstrumentedStore wraps any store and records how many calls are in flight.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .types import Store, StoreError


@dataclass(frozen=True)
class StatementProfile:
    latency_ms: float = 0.0
    jitter_ms: float = 0.0
    fail: bool = False
    rows: tuple[Mapping[str, Any], ...] = ()
    affected: int = 1


@dataclass
class SimulatedStore:
    profiles: dict[str, StatementProfile] = field(default_factory=dict)
    default: StatementProfile = field(default_factory=StatementProfile)
    rng: random.Random = field(default_factory=random.Random)

    def profile_for(self, statement: str) -> StatementProfile:
        return self.profiles.get(statement, self.default)

    async def _wait(self, statement: str) -> StatementProfile:
        profile = self.profile_for(statement)
        delay_ms = profile.latency_ms
        if profile.jitter_ms > 0:
            delay_ms += self.rng.uniform(0, profile.jitter_ms)
        await asyncio.sleep(delay_ms / 1000.0)
        if profile.fail:
            raise StoreError(statement, f"simulated failure for statement: {statement}")
        return profile

    async def query(self, statement: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        profile = await self._wait(statement)
        return [dict(row) for row in profile.rows]

    async def execute(self, statement: str, params: Sequence[Any] = ()) -> int:
        profile = await self._wait(statement)
        return profile.affected


class InstrumentedStore:
    def __init__(self, inner: Store):
        self.inner = inner
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[str] = []

    def _enter(self, statement: str) -> None:
        self.calls.append(statement)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)

    async def query(self, statement: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        self._enter(statement)
        try:
            return await self.inner.query(statement, params)
        finally:
            self.in_flight -= 1

    async def execute(self, statement: str, params: Sequence[Any] = ()) -> int:
        self._enter(statement)
        try:
            return await self.inner.execute(statement, params)
        finally:
            self.in_flight -= 1
