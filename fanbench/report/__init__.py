from .history import (
    DEFAULT_HISTORY_SIZE,
    ResultHistory,
    append_records,
    load_records,
    write_records,
)
from .reporter import summarize
from .types import ComparisonReport, StrategySummary

__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "ComparisonReport",
    "ResultHistory",
    "StrategySummary",
    "append_records",
    "load_records",
    "summarize",
    "write_records",
]
