from __future__ import annotations

import asyncio

import structlog

from fanbench.operations import (
    ExecutionStrategy,
    Mode,
    OperationContext,
    OperationDescriptor,
    OperationError,
    OperationTimeout,
    validate_operations,
)
from fanbench.store import Clock, MonotonicClock

from .types import OperationResult, Outcome, RunResult

logger = structlog.get_logger(__name__)

DEFAULT_OPERATION_TIMEOUT_S = 30.0


class Orchestrator:
    """Runs a fixed set of operations sequentially or concurrently and times them.

    Failures are recorded, never retried: a retry would hide the latency the
    run exists to measure.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        operation_timeout_s: float | None = DEFAULT_OPERATION_TIMEOUT_S,
    ):
        self.clock = clock or MonotonicClock()
        self.operation_timeout_s = operation_timeout_s

    async def execute(
        self,
        operations: list[OperationDescriptor],
        strategy: ExecutionStrategy,
        context: OperationContext,
    ) -> RunResult:
        validate_operations(operations)
        start = self.clock.now()

        match strategy.mode:
            case Mode.SEQUENTIAL:
                results = await self._run_sequential(operations, context, start)
            case Mode.CONCURRENT:
                results = await self._run_concurrent(
                    operations, context, start, strategy.concurrency_limit
                )
            case _:
                raise AssertionError("Unreachable")

        total_ms = (self.clock.now() - start) * 1000.0
        return self._build_result(strategy.mode, operations, results, total_ms)

    async def _run_sequential(
        self,
        operations: list[OperationDescriptor],
        context: OperationContext,
        start: float,
    ) -> list[OperationResult]:
        results: list[OperationResult] = []

        for op in operations:
            result = await self._invoke(op, context, start)
            results.append(result)
            if not result.ok and not op.may_fail_independently:
                break

        return results

    async def _run_concurrent(
        self,
        operations: list[OperationDescriptor],
        context: OperationContext,
        start: float,
        limit: int | None,
    ) -> list[OperationResult]:
        if limit is None or limit >= len(operations):
            coros = [self._invoke(op, context, start) for op in operations]
        else:
            # Semaphore waiters are woken FIFO, so queued operations are
            # admitted in submission order.
            gate = asyncio.Semaphore(limit)

            async def admitted(op: OperationDescriptor) -> OperationResult:
                async with gate:
                    return await self._invoke(op, context, start)

            coros = [admitted(op) for op in operations]

        # _invoke never raises for operation failures, so gather waits for
        # every outcome instead of stopping at the first error.
        return list(await asyncio.gather(*coros))

    async def _invoke(
        self,
        op: OperationDescriptor,
        context: OperationContext,
        run_start: float,
    ) -> OperationResult:
        timeout_s = op.timeout_s if op.timeout_s is not None else self.operation_timeout_s
        started = self.clock.now()
        value = None
        error: OperationError | None = None

        try:
            if timeout_s is None:
                value = await op.invoke(context)
            else:
                value = await asyncio.wait_for(op.invoke(context), timeout_s)
        except TimeoutError:
            error = OperationTimeout(op.name, timeout_s)
        except OperationError as exc:
            error = exc
        except Exception as exc:
            error = OperationError(op.name, str(exc) or type(exc).__name__)
            error.__cause__ = exc

        finished = self.clock.now()
        result = OperationResult(
            name=op.name,
            start_offset_ms=(started - run_start) * 1000.0,
            duration_ms=(finished - started) * 1000.0,
            outcome=Outcome.SUCCESS if error is None else Outcome.FAILURE,
            reason=None if error is None else error.reason,
            value=value,
        )
        logger.debug(
            "operation_settled",
            operation=op.name,
            duration_ms=round(result.duration_ms, 3),
            outcome=result.outcome.value,
            reason=result.reason,
        )
        return result

    def _build_result(
        self,
        mode: Mode,
        operations: list[OperationDescriptor],
        results: list[OperationResult],
        total_ms: float,
    ) -> RunResult:
        independent = {op.name: op.may_fail_independently for op in operations}
        failed_operation: str | None = None
        reason: str | None = None

        for result in results:
            if not result.ok and not independent[result.name]:
                failed_operation = result.name
                reason = result.reason
                break

        outcome = Outcome.SUCCESS if failed_operation is None else Outcome.FAILURE
        if failed_operation is not None:
            logger.info(
                "run_failed",
                mode=mode.value,
                operation=failed_operation,
                reason=reason,
                ran=len(results),
                total=len(operations),
            )

        return RunResult(mode, tuple(results), total_ms, outcome, failed_operation, reason)
