from __future__ import annotations

import asyncio

import structlog

from fanbench.operations import (
    ConfigurationError,
    ExecutionStrategy,
    OperationContext,
    OperationDescriptor,
    validate_operations,
)
from fanbench.orchestrator import Orchestrator, RunResult

from .types import LoadTestResult

logger = structlog.get_logger(__name__)

DEFAULT_RUN_TIMEOUT_S = 30.0


class LoadDriver:
    """Fans orchestrator runs out across simulated concurrent users.

    Every (user, request) pair becomes its own task and all of them are
    awaited together. ``strategy.mode`` only shapes what happens inside a
    single run; runs themselves always overlap.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        *,
        run_timeout_s: float | None = DEFAULT_RUN_TIMEOUT_S,
        ramp_up_s: float = 0.0,
    ):
        if run_timeout_s is not None and run_timeout_s <= 0:
            raise ConfigurationError(f"run_timeout_s must be positive, got {run_timeout_s}")
        if ramp_up_s < 0:
            raise ConfigurationError(f"ramp_up_s can't be negative, got {ramp_up_s}")
        self.orchestrator = orchestrator
        self.clock = orchestrator.clock
        self.run_timeout_s = run_timeout_s
        self.ramp_up_s = ramp_up_s

    async def run_load_test(
        self,
        operations: list[OperationDescriptor],
        strategy: ExecutionStrategy,
        concurrent_users: int,
        requests_per_user: int,
        context: OperationContext,
        *,
        operation_set_id: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> LoadTestResult:
        if concurrent_users < 1:
            raise ConfigurationError(f"concurrent_users must be >= 1, got {concurrent_users}")
        if requests_per_user < 1:
            raise ConfigurationError(f"requests_per_user must be >= 1, got {requests_per_user}")
        validate_operations(operations)

        log = logger.bind(
            strategy=strategy.label,
            users=concurrent_users,
            requests_per_user=requests_per_user,
            operation_set=operation_set_id,
        )
        log.info("load_test_started")

        tasks: list[asyncio.Task[RunResult]] = []
        cancelled = False
        start = self.clock.now()

        for user in range(concurrent_users):
            if cancel is not None and cancel.is_set():
                cancelled = True
                break
            for _ in range(requests_per_user):
                tasks.append(
                    asyncio.create_task(self._run_once(operations, strategy, context))
                )
            if self.ramp_up_s > 0 and user < concurrent_users - 1:
                await self._pause(self.ramp_up_s / concurrent_users, cancel)
            elif cancel is not None:
                # let a canceller run before the next user is launched
                await asyncio.sleep(0)

        run_results = list(await asyncio.gather(*tasks)) if tasks else []
        wall_clock_s = self.clock.now() - start

        result = LoadTestResult(
            strategy_label=strategy.label,
            mode=strategy.mode,
            concurrent_users=concurrent_users,
            requests_per_user=requests_per_user,
            operation_names=tuple(op.name for op in operations),
            run_results=tuple(run_results),
            wall_clock_s=wall_clock_s,
            partial=cancelled,
            operation_set_id=operation_set_id,
        )

        if cancelled:
            log.info("load_test_cancelled", launched=len(tasks))
        log.info(
            "load_test_completed",
            runs=result.total_runs,
            success_rate=round(result.success_rate, 2),
            avg_ms=round(result.avg_total_duration_ms, 3),
            p95_ms=round(result.p95_ms, 3),
            throughput=round(result.throughput_per_second, 3),
        )
        return result

    async def _run_once(
        self,
        operations: list[OperationDescriptor],
        strategy: ExecutionStrategy,
        context: OperationContext,
    ) -> RunResult:
        start = self.clock.now()
        coro = self.orchestrator.execute(operations, strategy, context)
        try:
            if self.run_timeout_s is None:
                return await coro
            return await asyncio.wait_for(coro, self.run_timeout_s)
        except TimeoutError:
            elapsed_ms = (self.clock.now() - start) * 1000.0
            logger.info("run_timed_out", timeout_s=self.run_timeout_s)
            return RunResult.timed_out(strategy.mode, elapsed_ms)

    async def _pause(self, delay_s: float, cancel: asyncio.Event | None) -> None:
        if cancel is None:
            await asyncio.sleep(delay_s)
            return
        try:
            await asyncio.wait_for(cancel.wait(), delay_s)
        except TimeoutError:
            pass
