from __future__ import annotations

import asyncio
import random
from pathlib import Path

from fanbench.catalog import build_operations, build_store, default_config
from fanbench.config import BenchmarkConfig, OperationSetConfig, load_benchmark
from fanbench.load import LoadDriver, LoadTestResult
from fanbench.operations import ExecutionStrategy, OperationContext
from fanbench.orchestrator import Orchestrator, RunResult
from fanbench.store import Clock, Store


class Bench:
    """Wires operation sets, stores, the orchestrator and the load driver.

    When no store is injected each operation set gets its own simulated store
    built from the latencies in its config.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        *,
        store: Store | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config
        self.store = store
        self.rng = rng or random.Random()
        self.orchestrator = Orchestrator(
            clock, operation_timeout_s=config.settings.operation_timeout_s
        )
        self._stores: dict[str, Store] = {}

    @classmethod
    def from_path(
        cls,
        path: str | Path | None,
        *,
        jitter_ms: float = 0.0,
        seed: int | None = None,
    ) -> Bench:
        config = default_config(jitter_ms) if path is None else load_benchmark(path)
        return cls(config, rng=random.Random(seed))

    def operation_set(self, set_id: str) -> OperationSetConfig:
        return self.config.get_set(set_id)

    def context(self, set_id: str) -> OperationContext:
        if self.store is not None:
            return OperationContext(self.store)
        if set_id not in self._stores:
            self._stores[set_id] = build_store(self.operation_set(set_id), self.rng)
        return OperationContext(self._stores[set_id])

    async def book(self, set_id: str, strategy: ExecutionStrategy) -> RunResult:
        operations = build_operations(self.operation_set(set_id))
        return await self.orchestrator.execute(operations, strategy, self.context(set_id))

    async def load_test(
        self,
        set_id: str,
        strategy: ExecutionStrategy,
        concurrent_users: int,
        requests_per_user: int,
        *,
        ramp_up_s: float = 0.0,
        cancel: asyncio.Event | None = None,
    ) -> LoadTestResult:
        operations = build_operations(self.operation_set(set_id))
        driver = LoadDriver(
            self.orchestrator,
            run_timeout_s=self.config.settings.run_timeout_s,
            ramp_up_s=ramp_up_s,
        )
        return await driver.run_load_test(
            operations,
            strategy,
            concurrent_users,
            requests_per_user,
            self.context(set_id),
            operation_set_id=set_id,
            cancel=cancel,
        )
