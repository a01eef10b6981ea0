"""
Operation sets and the glue that turns their config into runnable pieces.

``ride_booking`` is the built-in set: the five independent checks a ride
booking performs before a ride is created. Latencies are the base delays the
simulated store applies to each statement.
"""

from __future__ import annotations

import random
from dataclasses import replace

from fanbench.config import BenchmarkConfig, OperationConfig, OperationSetConfig, Settings
from fanbench.operations import OperationContext, OperationDescriptor
from fanbench.store import SimulatedStore, StatementProfile

RIDE_BOOKING = "ride_booking"

_RIDE_BOOKING_OPERATIONS = [
    OperationConfig(
        name="wallet_check",
        statement="SELECT wallet_balance FROM users WHERE id = ?",
        params=[1],
        latency_ms=50,
    ),
    OperationConfig(
        name="trip_history",
        statement="SELECT COUNT(*) AS trip_count FROM rides WHERE user_id = ? AND status = 'completed'",
        params=[1],
        latency_ms=80,
    ),
    OperationConfig(
        name="surge_pricing",
        statement=(
            "SELECT AVG(surge_multiplier) AS avg_surge FROM rides "
            "WHERE created_at > DATE_SUB(NOW(), INTERVAL 1 HOUR)"
        ),
        latency_ms=60,
    ),
    OperationConfig(
        name="request_log",
        statement="INSERT INTO ride_logs (user_id, action, details, created_at) VALUES (?, ?, ?, NOW())",
        kind="execute",
        params=[1, "ride_request", "{}"],
        latency_ms=40,
    ),
    OperationConfig(
        name="payment_validation",
        statement="SELECT id FROM user_payment_methods WHERE user_id = ? AND is_active = 1 LIMIT 1",
        params=[1],
        latency_ms=70,
    ),
]

_CANNED_ROWS = {
    "wallet_check": ({"wallet_balance": 500.0},),
    "trip_history": ({"trip_count": 12},),
    "surge_pricing": ({"avg_surge": 1.2},),
    "payment_validation": ({"id": 1},),
}


def ride_booking_set(jitter_ms: float = 0.0) -> OperationSetConfig:
    ops = [
        replace(op, jitter_ms=jitter_ms, params=list(op.params))
        for op in _RIDE_BOOKING_OPERATIONS
    ]
    return OperationSetConfig(RIDE_BOOKING, ops)


def default_config(jitter_ms: float = 0.0) -> BenchmarkConfig:
    return BenchmarkConfig({RIDE_BOOKING: ride_booking_set(jitter_ms)}, Settings())


def tagged_statement(op: OperationConfig) -> str:
    """Statement as sent to the store, prefixed with a comment naming the operation.

    Two operations may share a statement; the tag keeps their store profiles apart.
    """
    return f"/* {op.name} */ {op.statement}"


def build_operations(op_set: OperationSetConfig) -> list[OperationDescriptor]:
    return [_descriptor(op) for op in op_set]


def _descriptor(op: OperationConfig) -> OperationDescriptor:
    statement = tagged_statement(op)
    params = tuple(op.params)

    if op.kind == "execute":

        async def invoke(ctx: OperationContext):
            return await ctx.store.execute(statement, params)

    else:

        async def invoke(ctx: OperationContext):
            return await ctx.store.query(statement, params)

    return OperationDescriptor(
        name=op.name,
        invoke=invoke,
        may_fail_independently=op.may_fail_independently,
        timeout_ms=op.timeout_ms,
        latency_hint_ms=op.latency_ms,
    )


def build_store(op_set: OperationSetConfig, rng: random.Random | None = None) -> SimulatedStore:
    profiles = {
        tagged_statement(op): StatementProfile(
            latency_ms=op.latency_ms,
            jitter_ms=op.jitter_ms,
            fail=op.fail,
            rows=_CANNED_ROWS.get(op.name, ()),
        )
        for op in op_set
    }
    return SimulatedStore(profiles, rng=rng or random.Random())
