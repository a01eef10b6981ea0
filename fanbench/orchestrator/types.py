from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from fanbench.operations import Mode


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class OperationResult:
    name: str
    start_offset_ms: float
    duration_ms: float
    outcome: Outcome
    reason: str | None = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "startOffsetMs": round(self.start_offset_ms, 3),
            "durationMs": round(self.duration_ms, 3),
            "outcome": self.outcome.value,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OperationResult:
        return cls(
            name=data["name"],
            start_offset_ms=float(data["startOffsetMs"]),
            duration_ms=float(data["durationMs"]),
            outcome=Outcome(data["outcome"]),
            reason=data.get("reason"),
        )


@dataclass(frozen=True)
class RunResult:
    mode: Mode
    operations: tuple[OperationResult, ...]
    total_duration_ms: float
    outcome: Outcome
    failed_operation: str | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def failed(self) -> list[str]:
        return [op.name for op in self.operations if not op.ok]

    def get(self, name: str) -> OperationResult:
        for op in self.operations:
            if op.name == name:
                return op
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "perOperation": [op.to_dict() for op in self.operations],
            "totalDurationMs": round(self.total_duration_ms, 3),
            "outcome": self.outcome.value,
            "failedOperation": self.failed_operation,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunResult:
        return cls(
            mode=Mode(data["mode"]),
            operations=tuple(OperationResult.from_dict(op) for op in data["perOperation"]),
            total_duration_ms=float(data["totalDurationMs"]),
            outcome=Outcome(data["outcome"]),
            failed_operation=data.get("failedOperation"),
            reason=data.get("reason"),
        )

    @classmethod
    def timed_out(cls, mode: Mode, duration_ms: float) -> RunResult:
        return cls(mode, (), duration_ms, Outcome.FAILURE, None, "Timeout")
