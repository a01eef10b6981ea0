from .orchestrator import DEFAULT_OPERATION_TIMEOUT_S, Orchestrator
from .types import OperationResult, Outcome, RunResult

__all__ = [
    "DEFAULT_OPERATION_TIMEOUT_S",
    "OperationResult",
    "Orchestrator",
    "Outcome",
    "RunResult",
]
