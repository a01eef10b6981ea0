from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fanbench.load import LoadTestResult


@dataclass(frozen=True)
class StrategySummary:
    strategy_label: str
    avg_ms: float
    p95_ms: float
    success_rate: float
    throughput_per_second: float

    @classmethod
    def from_result(cls, result: LoadTestResult) -> StrategySummary:
        return cls(
            result.strategy_label,
            result.avg_total_duration_ms,
            result.p95_ms,
            result.success_rate,
            result.throughput_per_second,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategyLabel": self.strategy_label,
            "averageTimeMs": round(self.avg_ms, 3),
            "p95Ms": round(self.p95_ms, 3),
            "successRate": round(self.success_rate, 2),
            "throughputPerSecond": round(self.throughput_per_second, 3),
        }


@dataclass(frozen=True)
class ComparisonReport:
    operation_names: tuple[str, ...]
    concurrent_users: int
    requests_per_user: int
    sequential: StrategySummary
    concurrent: StrategySummary
    improvement_percent: float
    time_saved_ms: float
    throughput_increase_percent: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operations": list(self.operation_names),
            "concurrentUsers": self.concurrent_users,
            "requestsPerUser": self.requests_per_user,
            "sequential": self.sequential.to_dict(),
            "concurrent": self.concurrent.to_dict(),
            "improvementPercent": round(self.improvement_percent, 2),
            "timeSavedMs": round(self.time_saved_ms, 3),
            "throughputIncreasePercent": (
                None
                if self.throughput_increase_percent is None
                else round(self.throughput_increase_percent, 2)
            ),
        }
