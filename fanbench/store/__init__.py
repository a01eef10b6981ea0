from .simulated import InstrumentedStore, SimulatedStore, StatementProfile
from .types import Clock, MonotonicClock, Store, StoreError

__all__ = [
    "Clock",
    "InstrumentedStore",
    "MonotonicClock",
    "SimulatedStore",
    "StatementProfile",
    "Store",
    "StoreError",
]
