from .types import (
    ConfigurationError,
    ExecutionStrategy,
    FanbenchError,
    IncomparableError,
    Mode,
    OperationContext,
    OperationDescriptor,
    OperationError,
    OperationTimeout,
    validate_operations,
)

__all__ = [
    "ConfigurationError",
    "ExecutionStrategy",
    "FanbenchError",
    "IncomparableError",
    "Mode",
    "OperationContext",
    "OperationDescriptor",
    "OperationError",
    "OperationTimeout",
    "validate_operations",
]
