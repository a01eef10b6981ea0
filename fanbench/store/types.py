from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


class StoreError(Exception):
    def __init__(self, statement: str, message: str):
        super().__init__(message)
        self.statement = statement


@runtime_checkable
class Store(Protocol):
    async def query(self, statement: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        ...

    async def execute(self, statement: str, params: Sequence[Any] = ()) -> int:
        ...


class Clock(Protocol):
    def now(self) -> float:
        """Monotonic time in seconds."""
        ...


class MonotonicClock:
    def now(self) -> float:
        return time.perf_counter()
