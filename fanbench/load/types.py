from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fanbench.operations import Mode
from fanbench.orchestrator import RunResult

from .stats import mean, percentile


@dataclass(frozen=True)
class LoadTestResult:
    strategy_label: str
    mode: Mode
    concurrent_users: int
    requests_per_user: int
    operation_names: tuple[str, ...]
    run_results: tuple[RunResult, ...]
    wall_clock_s: float
    partial: bool = False
    operation_set_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_runs(self) -> int:
        return len(self.run_results)

    @property
    def successful_runs(self) -> int:
        return sum(1 for run in self.run_results if run.ok)

    @property
    def failed_runs(self) -> int:
        return self.total_runs - self.successful_runs

    @property
    def success_rate(self) -> float:
        """Percentage of runs that succeeded, 0-100."""
        if not self.run_results:
            return 0.0
        return self.successful_runs / self.total_runs * 100.0

    @property
    def durations_ms(self) -> list[float]:
        return [run.total_duration_ms for run in self.run_results]

    @property
    def avg_total_duration_ms(self) -> float:
        return mean(self.durations_ms)

    @property
    def p50_ms(self) -> float:
        return percentile(self.durations_ms, 0.50)

    @property
    def p95_ms(self) -> float:
        return percentile(self.durations_ms, 0.95)

    @property
    def p99_ms(self) -> float:
        return percentile(self.durations_ms, 0.99)

    @property
    def min_ms(self) -> float:
        return min(self.durations_ms, default=0.0)

    @property
    def max_ms(self) -> float:
        return max(self.durations_ms, default=0.0)

    @property
    def throughput_per_second(self) -> float:
        if self.wall_clock_s <= 0:
            return 0.0
        return self.successful_runs / self.wall_clock_s

    def summary(self) -> dict[str, Any]:
        return {
            "strategyLabel": self.strategy_label,
            "mode": self.mode.value,
            "operationSetId": self.operation_set_id,
            "operations": list(self.operation_names),
            "concurrentUsers": self.concurrent_users,
            "requestsPerUser": self.requests_per_user,
            "totalRequests": self.total_runs,
            "successfulRequests": self.successful_runs,
            "failedRequests": self.failed_runs,
            "successRate": round(self.success_rate, 2),
            "avgTotalDurationMs": round(self.avg_total_duration_ms, 3),
            "minMs": round(self.min_ms, 3),
            "maxMs": round(self.max_ms, 3),
            "p50Ms": round(self.p50_ms, 3),
            "p95Ms": round(self.p95_ms, 3),
            "p99Ms": round(self.p99_ms, 3),
            "throughputPerSecond": round(self.throughput_per_second, 3),
            "wallClockSeconds": round(self.wall_clock_s, 6),
            "partial": self.partial,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.summary()
        data["runResults"] = [run.to_dict() for run in self.run_results]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoadTestResult:
        """Rebuild a result from ``to_dict`` output; derived figures are recomputed."""
        return cls(
            strategy_label=data["strategyLabel"],
            mode=Mode(data["mode"]),
            concurrent_users=int(data["concurrentUsers"]),
            requests_per_user=int(data["requestsPerUser"]),
            operation_names=tuple(data["operations"]),
            run_results=tuple(RunResult.from_dict(run) for run in data["runResults"]),
            wall_clock_s=float(data["wallClockSeconds"]),
            partial=bool(data.get("partial", False)),
            operation_set_id=data.get("operationSetId"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
