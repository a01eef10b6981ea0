# tests/test_orchestrator.py
from __future__ import annotations

import asyncio

import pytest

from fanbench.operations import (
    ConfigurationError,
    ExecutionStrategy,
    Mode,
    OperationContext,
    OperationDescriptor,
)
from fanbench.orchestrator import Orchestrator, Outcome, RunResult
from fanbench.store import InstrumentedStore, SimulatedStore, StatementProfile

BOOKING = {
    "wallet_check": {"ms": 50},
    "trip_history": {"ms": 80},
    "surge_pricing": {"ms": 60},
    "request_log": {"ms": 40},
    "payment_validation": {"ms": 70},
}

# Scheduling jitter allowance for wall-clock assertions.
SLACK_MS = 60.0


def _setup(
    ops: dict[str, dict],
) -> tuple[list[OperationDescriptor], InstrumentedStore]:
    """
    ops schema:
      name -> {ms: float, fail?: bool, independent?: bool, timeout_ms?: float, rows?: list[dict]}
    Each operation queries a statement equal to its own name.
    """
    profiles = {
        name: StatementProfile(
            latency_ms=spec["ms"],
            fail=spec.get("fail", False),
            rows=tuple(spec.get("rows", ())),
        )
        for name, spec in ops.items()
    }
    store = InstrumentedStore(SimulatedStore(profiles))

    def make(name: str, spec: dict) -> OperationDescriptor:
        async def invoke(ctx: OperationContext):
            return await ctx.store.query(name)

        return OperationDescriptor(
            name=name,
            invoke=invoke,
            may_fail_independently=spec.get("independent", False),
            timeout_ms=spec.get("timeout_ms"),
        )

    return [make(name, spec) for name, spec in ops.items()], store


def _execute(
    ops: list[OperationDescriptor],
    strategy: ExecutionStrategy,
    store,
    orchestrator: Orchestrator | None = None,
) -> RunResult:
    orchestrator = orchestrator or Orchestrator()
    return asyncio.run(orchestrator.execute(ops, strategy, OperationContext(store)))


def test_sequential_total_is_sum_of_durations() -> None:
    ops, store = _setup(BOOKING)

    rr = _execute(ops, ExecutionStrategy.sequential(), store)

    assert rr.ok
    assert rr.mode is Mode.SEQUENTIAL
    assert [op.name for op in rr.operations] == list(BOOKING)
    durations = [op.duration_ms for op in rr.operations]
    assert 300 * 0.97 <= rr.total_duration_ms <= 300 + SLACK_MS
    assert abs(rr.total_duration_ms - sum(durations)) < 20


def test_sequential_operations_never_overlap() -> None:
    ops, store = _setup(BOOKING)

    rr = _execute(ops, ExecutionStrategy.sequential(), store)

    for prev, nxt in zip(rr.operations, rr.operations[1:]):
        assert nxt.start_offset_ms >= prev.start_offset_ms + prev.duration_ms - 1e-6
    assert store.max_in_flight == 1


def test_concurrent_total_is_max_duration() -> None:
    ops, store = _setup(BOOKING)

    rr = _execute(ops, ExecutionStrategy.concurrent(), store)

    assert rr.ok
    durations = [op.duration_ms for op in rr.operations]
    assert max(durations) - 1e-6 <= rr.total_duration_ms <= sum(durations)
    assert 80 * 0.97 <= rr.total_duration_ms <= 80 + SLACK_MS
    assert rr.total_duration_ms < sum(durations)
    assert store.max_in_flight == len(BOOKING)


def test_concurrent_preserves_submission_order() -> None:
    ops, store = _setup({"slow": {"ms": 40}, "fast": {"ms": 1}, "mid": {"ms": 20}})

    rr = _execute(ops, ExecutionStrategy.concurrent(), store)

    assert [op.name for op in rr.operations] == ["slow", "fast", "mid"]
    assert rr.get("fast").duration_ms < rr.get("slow").duration_ms


def test_independent_failure_does_not_fail_concurrent_run() -> None:
    rows = [{"wallet_balance": 42.0}]
    ops, store = _setup(
        {
            "a_flaky": {"ms": 5, "fail": True, "independent": True},
            "b_wallet": {"ms": 10, "rows": rows},
        }
    )

    rr = _execute(ops, ExecutionStrategy.concurrent(), store)

    assert rr.outcome is Outcome.SUCCESS
    assert rr.failed_operation is None
    assert rr.failed == ["a_flaky"]
    assert rr.get("a_flaky").outcome is Outcome.FAILURE
    assert rr.get("b_wallet").ok
    assert rr.get("b_wallet").value == rows


def test_dependent_failure_in_concurrent_mode_still_records_every_operation() -> None:
    ops, store = _setup(
        {
            "a": {"ms": 5},
            "b_fail": {"ms": 5, "fail": True},
            "c": {"ms": 30},
        }
    )

    rr = _execute(ops, ExecutionStrategy.concurrent(), store)

    assert rr.outcome is Outcome.FAILURE
    assert rr.failed_operation == "b_fail"
    assert "simulated failure" in (rr.reason or "")
    assert [op.name for op in rr.operations] == ["a", "b_fail", "c"]
    assert rr.get("c").ok
    # the failure did not cut the run short
    assert rr.total_duration_ms >= rr.get("c").duration_ms - 1e-6


def test_sequential_failure_aborts_remaining_operations() -> None:
    ops, store = _setup(
        {
            "a": {"ms": 5},
            "b_fail": {"ms": 5, "fail": True},
            "c": {"ms": 5},
            "d": {"ms": 5},
        }
    )

    rr = _execute(ops, ExecutionStrategy.sequential(), store)

    assert rr.outcome is Outcome.FAILURE
    assert rr.failed_operation == "b_fail"
    assert [op.name for op in rr.operations] == ["a", "b_fail"]
    assert store.calls == ["a", "b_fail"]
    assert rr.get("b_fail").duration_ms > 0


def test_sequential_independent_failure_continues() -> None:
    ops, store = _setup(
        {
            "a_fail": {"ms": 5, "fail": True, "independent": True},
            "b": {"ms": 5},
        }
    )

    rr = _execute(ops, ExecutionStrategy.sequential(), store)

    assert rr.ok
    assert [op.name for op in rr.operations] == ["a_fail", "b"]
    assert rr.failed == ["a_fail"]


def test_concurrency_limit_caps_in_flight_operations() -> None:
    ops, store = _setup({f"op{i}": {"ms": 20} for i in range(5)})

    rr = _execute(ops, ExecutionStrategy.concurrent(limit=2), store)

    assert rr.ok
    assert store.max_in_flight == 2
    # 5 operations through 2 slots take three waves
    assert rr.total_duration_ms >= 60 * 0.97
    assert store.calls[:2] == ["op0", "op1"]


def test_concurrency_limit_larger_than_set_is_unbounded() -> None:
    ops, store = _setup({f"op{i}": {"ms": 10} for i in range(3)})

    rr = _execute(ops, ExecutionStrategy.concurrent(limit=10), store)

    assert rr.ok
    assert store.max_in_flight == 3


def test_operation_timeout_fails_fast() -> None:
    ops, store = _setup({"slow": {"ms": 50, "timeout_ms": 5}, "ok": {"ms": 1}})

    rr = _execute(ops, ExecutionStrategy.concurrent(), store)

    slow = rr.get("slow")
    assert slow.outcome is Outcome.FAILURE
    assert slow.reason == "Timeout"
    assert slow.duration_ms < 40
    assert rr.get("ok").ok
    assert rr.failed_operation == "slow"


def test_orchestrator_default_timeout_applies() -> None:
    ops, store = _setup({"slow": {"ms": 200}})

    rr = _execute(
        ops,
        ExecutionStrategy.sequential(),
        store,
        Orchestrator(operation_timeout_s=0.01),
    )

    assert not rr.ok
    assert rr.reason == "Timeout"
    assert rr.total_duration_ms < 150


def test_invoke_exception_is_wrapped() -> None:
    async def boom(ctx: OperationContext):
        raise RuntimeError("connection reset")

    ops = [OperationDescriptor("boom", boom)]

    rr = _execute(ops, ExecutionStrategy.sequential(), SimulatedStore())

    assert rr.failed_operation == "boom"
    assert rr.reason == "connection reset"


def test_empty_operations_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        _execute([], ExecutionStrategy.sequential(), SimulatedStore())


def test_duplicate_names_raise_configuration_error() -> None:
    ops, store = _setup({"a": {"ms": 1}})

    with pytest.raises(ConfigurationError):
        _execute(ops + ops, ExecutionStrategy.concurrent(), store)

    assert store.calls == []


@pytest.mark.parametrize("limit", [0, -3])
def test_concurrency_limit_below_one_is_rejected(limit: int) -> None:
    with pytest.raises(ConfigurationError):
        ExecutionStrategy.concurrent(limit)


def test_mode_parse_accepts_parallel_alias() -> None:
    assert Mode.parse("parallel") is Mode.CONCURRENT
    assert Mode.parse(" Sequential ") is Mode.SEQUENTIAL
    with pytest.raises(ConfigurationError):
        Mode.parse("batch")
