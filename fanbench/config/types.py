from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fanbench.operations import ConfigurationError


@dataclass
class OperationConfig:
    name: str
    statement: str
    kind: str = "query"
    params: list[Any] = field(default_factory=list)
    latency_ms: float = 0.0
    jitter_ms: float = 0.0
    fail: bool = False
    may_fail_independently: bool = False
    timeout_ms: float | None = None


@dataclass
class OperationSetConfig:
    id: str
    operations: list[OperationConfig]

    def __iter__(self):
        yield from self.operations

    def __len__(self):
        return len(self.operations)

    def names(self) -> list[str]:
        return [op.name for op in self.operations]


@dataclass
class Settings:
    operation_timeout_s: float = 30.0
    run_timeout_s: float = 30.0
    history_size: int = 10


@dataclass
class BenchmarkConfig:
    operation_sets: dict[str, OperationSetConfig]
    settings: Settings = field(default_factory=Settings)

    def has_set(self, id: str) -> bool:
        return id in self.operation_sets

    def get_set(self, id: str) -> OperationSetConfig:
        if not self.has_set(id):
            raise KeyError(id)

        return self.operation_sets[id]

    def set_ids(self) -> list[str]:
        return sorted(self.operation_sets.keys())


class ConfigError(ConfigurationError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)
