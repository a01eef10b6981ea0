"""Fan-out/fan-in query orchestration with latency and throughput measurement."""

__version__ = "0.1.0"
