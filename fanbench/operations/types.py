from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fanbench.store.types import Store


class FanbenchError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class ConfigurationError(FanbenchError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class OperationError(FanbenchError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"{operation}: {reason}")
        self.operation = operation
        self.reason = reason


class OperationTimeout(OperationError):
    def __init__(self, operation: str, timeout_s: float):
        super().__init__(operation, "Timeout")
        self.timeout_s = timeout_s


class IncomparableError(FanbenchError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class Mode(str, Enum):
    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"

    @classmethod
    def parse(cls, value: str) -> Mode:
        normalized = value.strip().lower()
        # the demo calls the concurrent endpoint "parallel"
        if normalized == "parallel":
            return cls.CONCURRENT
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(
                f"Unknown strategy mode: {value!r}, expected sequential or concurrent"
            ) from None


@dataclass(frozen=True)
class OperationContext:
    store: Store
    params: Mapping[str, Any] = field(default_factory=dict)


Invoke = Callable[[OperationContext], Awaitable[Any]]


@dataclass(frozen=True)
class OperationDescriptor:
    name: str
    invoke: Invoke
    may_fail_independently: bool = False
    timeout_ms: float | None = None
    latency_hint_ms: float | None = None

    @property
    def timeout_s(self) -> float | None:
        return None if self.timeout_ms is None else self.timeout_ms / 1000.0


@dataclass(frozen=True)
class ExecutionStrategy:
    mode: Mode
    concurrency_limit: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.mode, Mode):
            raise ConfigurationError(f"Invalid strategy mode: {self.mode!r}")
        if self.concurrency_limit is not None and self.concurrency_limit < 1:
            raise ConfigurationError(
                f"concurrency_limit must be >= 1, got {self.concurrency_limit}"
            )

    @classmethod
    def sequential(cls) -> ExecutionStrategy:
        return cls(Mode.SEQUENTIAL)

    @classmethod
    def concurrent(cls, limit: int | None = None) -> ExecutionStrategy:
        return cls(Mode.CONCURRENT, limit)

    @property
    def label(self) -> str:
        if self.mode is Mode.CONCURRENT and self.concurrency_limit is not None:
            return f"{self.mode.value}[{self.concurrency_limit}]"
        return self.mode.value


def validate_operations(operations: list[OperationDescriptor]) -> None:
    if len(operations) < 1:
        raise ConfigurationError("There must be at least one operation to run")

    seen: set[str] = set()
    for op in operations:
        if not isinstance(op.name, str) or len(op.name.strip()) < 1:
            raise ConfigurationError("An operation name can't be empty")
        if op.name in seen:
            raise ConfigurationError(f"Duplicate operation name: {op.name}")
        if op.timeout_ms is not None and op.timeout_ms <= 0:
            raise ConfigurationError(f"{op.name}: timeout_ms must be positive")
        seen.add(op.name)
