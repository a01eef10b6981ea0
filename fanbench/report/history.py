from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from fanbench.load import LoadTestResult
from fanbench.operations import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_SIZE = 10


class ResultHistory:
    """Bounded rolling history of load-test results, most recent last.

    Created once and shared by whoever records results. Appending and evicting
    the oldest entry happen under one lock, so a reader never sees more than
    ``size`` entries. Only ``clear`` empties it.
    """

    def __init__(self, size: int = DEFAULT_HISTORY_SIZE):
        if size < 1:
            raise ConfigurationError(f"history size must be >= 1, got {size}")
        self.size = size
        self._lock = threading.Lock()
        self._entries: deque[LoadTestResult] = deque(maxlen=size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, result: LoadTestResult) -> None:
        with self._lock:
            evicted = len(self._entries) == self.size
            self._entries.append(result)
        if evicted:
            logger.debug("history_evicted", size=self.size)

    def snapshot(self) -> tuple[LoadTestResult, ...]:
        with self._lock:
            return tuple(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def to_records(self) -> list[dict[str, Any]]:
        return [result.to_dict() for result in self.snapshot()]

    def save(self, path: str | Path) -> Path:
        return write_records(path, self.to_records(), self.size)

    @classmethod
    def load(cls, path: str | Path, size: int = DEFAULT_HISTORY_SIZE) -> ResultHistory:
        """Rebuild a history from a file written by ``save`` or ``append_records``.

        Only the ``size`` most recent records are kept.
        """
        history = cls(size)
        for record in load_records(path)[-size:]:
            try:
                history.append(LoadTestResult.from_dict(record))
            except (KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError(f"{path}: malformed history record: {exc}") from exc
        return history


def append_records(
    path: str | Path, results: Iterable[LoadTestResult], size: int = DEFAULT_HISTORY_SIZE
) -> Path:
    """Add results to a history file, keeping only its ``size`` most recent."""
    target = Path(path).expanduser()
    records = load_records(target) if target.exists() else []
    records.extend(result.to_dict() for result in results)
    return write_records(target, records, size)


def write_records(path: str | Path, records: list[dict[str, Any]], size: int) -> Path:
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "savedAt": datetime.now(timezone.utc).isoformat(),
        "results": records[-size:],
    }
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return target


def load_records(path: str | Path) -> list[dict[str, Any]]:
    source = Path(path).expanduser()

    if not source.is_file():
        raise ConfigurationError(f"History file not found: {source}")

    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{source}: invalid JSON") from exc

    if not isinstance(raw, dict) or not isinstance(raw.get("results"), list):
        raise ConfigurationError(f"{source}: expected an object with a 'results' list")

    return list(raw["results"])
