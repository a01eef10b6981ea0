from .driver import DEFAULT_RUN_TIMEOUT_S, LoadDriver
from .stats import mean, percentile
from .types import LoadTestResult

__all__ = ["DEFAULT_RUN_TIMEOUT_S", "LoadDriver", "LoadTestResult", "mean", "percentile"]
