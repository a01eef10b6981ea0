from .loader import build_benchmark_config, load_benchmark
from .types import (
    BenchmarkConfig,
    ConfigError,
    OperationConfig,
    OperationSetConfig,
    Settings,
    UnsupportedConfigFormatError,
)

__all__ = [
    "load_benchmark",
    "build_benchmark_config",
    "BenchmarkConfig",
    "OperationConfig",
    "OperationSetConfig",
    "Settings",
    "ConfigError",
    "UnsupportedConfigFormatError",
]
