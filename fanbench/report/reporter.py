from __future__ import annotations

from collections.abc import Sequence

from fanbench.load import LoadTestResult
from fanbench.operations import IncomparableError, Mode

from .types import ComparisonReport, StrategySummary


def summarize(results: Sequence[LoadTestResult]) -> ComparisonReport:
    """Compare the latest sequential result against the latest concurrent one.

    Both must come from the same operation set and load shape; anything else
    raises IncomparableError before a single number is computed.
    """
    seq = _latest(results, Mode.SEQUENTIAL)
    par = _latest(results, Mode.CONCURRENT)
    _check_comparable(seq, par)

    seq_avg = seq.avg_total_duration_ms
    par_avg = par.avg_total_duration_ms
    if seq_avg <= 0:
        raise IncomparableError("Sequential baseline has no measured duration")

    improvement = (seq_avg - par_avg) / seq_avg * 100.0

    seq_tp = seq.throughput_per_second
    par_tp = par.throughput_per_second
    tp_increase = None if seq_tp <= 0 else (par_tp - seq_tp) / seq_tp * 100.0

    return ComparisonReport(
        operation_names=seq.operation_names,
        concurrent_users=seq.concurrent_users,
        requests_per_user=seq.requests_per_user,
        sequential=StrategySummary.from_result(seq),
        concurrent=StrategySummary.from_result(par),
        improvement_percent=improvement,
        time_saved_ms=seq_avg - par_avg,
        throughput_increase_percent=tp_increase,
    )


def _latest(results: Sequence[LoadTestResult], mode: Mode) -> LoadTestResult:
    for result in reversed(results):
        if result.mode is mode:
            return result
    raise IncomparableError(f"No {mode.value} result to compare")


def _check_comparable(seq: LoadTestResult, par: LoadTestResult) -> None:
    if seq.concurrent_users != par.concurrent_users:
        raise IncomparableError(
            f"concurrent_users differ: {seq.concurrent_users} != {par.concurrent_users}"
        )
    if seq.requests_per_user != par.requests_per_user:
        raise IncomparableError(
            f"requests_per_user differ: {seq.requests_per_user} != {par.requests_per_user}"
        )
    if seq.operation_names != par.operation_names:
        raise IncomparableError(
            f"operation sets differ: {list(seq.operation_names)} != {list(par.operation_names)}"
        )
