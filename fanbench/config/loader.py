import json
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import (
    BenchmarkConfig,
    ConfigError,
    OperationConfig,
    OperationSetConfig,
    Settings,
    UnsupportedConfigFormatError,
)

KINDS = {"query", "execute"}


def load_benchmark(path: str | Path) -> BenchmarkConfig:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    raw_file = _parse_file(pure_path, fmt)
    return build_benchmark_config(raw_file)


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    match fmt:
        case "yaml":
            try:
                raw_file = yaml.safe_load(text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"{path}: invalid YAML") from exc
        case "toml":
            try:
                raw_file = tomllib.loads(text)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{path}: invalid TOML") from exc
        case "json":
            try:
                raw_file = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"{path}: invalid JSON") from exc
        case _:
            raise AssertionError("Unreachable")

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: {fmt.upper()} parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def build_benchmark_config(raw: Mapping[str, Any]) -> BenchmarkConfig:
    for key in raw.keys():
        if key not in {"operation_sets", "settings"}:
            raise ConfigError(f"Can't process top-level field: {key}")

    if "operation_sets" not in raw:
        raise ConfigError("Missing 'operation_sets' field")

    raw_sets = raw["operation_sets"]
    if not isinstance(raw_sets, Mapping):
        raise ConfigError(f"'operation_sets' must be a mapping, got {type(raw_sets)}")

    if len(raw_sets) < 1:
        raise ConfigError("There must be at least one operation set in the config file")

    sets: dict[str, OperationSetConfig] = {}
    for set_id, fields in raw_sets.items():
        if not isinstance(set_id, str) or len(set_id.strip()) < 1:
            raise ConfigError(f"Operation set id must be a non-empty string, got {set_id!r}")

        set_id_norm = set_id.strip()
        if set_id_norm in sets:
            raise ConfigError(f"Duplicate operation set id after normalization: {set_id_norm}")

        sets[set_id_norm] = _build_set_config(set_id_norm, fields)

    settings = _build_settings(raw.get("settings", {}))
    return BenchmarkConfig(operation_sets=sets, settings=settings)


def _build_set_config(set_id: str, fields: Any) -> OperationSetConfig:
    if not isinstance(fields, Mapping):
        raise ConfigError(f"{set_id} must be a mapping")

    for field in fields.keys():
        if field != "operations":
            raise ConfigError(f"{set_id}: Can't process: {field}")

    raw_ops = fields.get("operations")
    if not isinstance(raw_ops, list):
        raise ConfigError(f"{set_id}: 'operations' should be a list")

    if len(raw_ops) < 1:
        raise ConfigError(f"{set_id}: There must be at least one operation")

    operations: list[OperationConfig] = []
    seen: set[str] = set()
    for item in raw_ops:
        op = _build_operation_config(set_id, item)
        if op.name in seen:
            raise ConfigError(f"{set_id}: Duplicate operation name: {op.name}")
        seen.add(op.name)
        operations.append(op)

    return OperationSetConfig(set_id, operations)


def _build_operation_config(set_id: str, fields: Any) -> OperationConfig:
    keys = {
        "name",
        "statement",
        "kind",
        "params",
        "latency_ms",
        "jitter_ms",
        "fail",
        "may_fail_independently",
        "timeout_ms",
    }

    if not isinstance(fields, Mapping):
        raise ConfigError(f"{set_id}: each operation must be a mapping")

    for field in fields.keys():
        if field not in keys:
            raise ConfigError(f"{set_id}: Can't process: {field}")

    if not isinstance(fields.get("name"), str) or len(fields["name"].strip()) < 1:
        raise ConfigError(f"{set_id}: every operation needs a non-empty 'name'")

    name = fields["name"].strip()
    where = f"{set_id}.{name}"

    if not isinstance(fields.get("statement"), str) or len(fields["statement"].strip()) < 1:
        raise ConfigError(f"{where}: missing 'statement'")

    statement = fields["statement"].strip()

    kind = fields.get("kind", "query")
    if kind not in KINDS:
        raise ConfigError(f"{where}: kind should be one of {sorted(KINDS)}, got {kind!r}")

    params = fields.get("params", [])
    if not isinstance(params, list):
        raise ConfigError(f"{where}: params should be a list")

    latency_ms = _non_negative(where, fields, "latency_ms", 0.0)
    jitter_ms = _non_negative(where, fields, "jitter_ms", 0.0)
    fail = _flag(where, fields, "fail")
    independent = _flag(where, fields, "may_fail_independently")

    timeout_ms = fields.get("timeout_ms")
    if timeout_ms is not None:
        if not _is_number(timeout_ms) or timeout_ms <= 0:
            raise ConfigError(f"{where}: timeout_ms should be a positive number")
        timeout_ms = float(timeout_ms)

    return OperationConfig(
        name, statement, kind, list(params), latency_ms, jitter_ms, fail, independent, timeout_ms
    )


def _build_settings(fields: Any) -> Settings:
    if not isinstance(fields, Mapping):
        raise ConfigError(f"'settings' must be a mapping, got {type(fields)}")

    settings = Settings()
    for key, value in fields.items():
        match key:
            case "operation_timeout_s" | "run_timeout_s":
                if not _is_number(value) or value <= 0:
                    raise ConfigError(f"settings: {key} should be a positive number")
                setattr(settings, key, float(value))
            case "history_size":
                if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                    raise ConfigError("settings: history_size should be an integer >= 1")
                settings.history_size = value
            case _:
                raise ConfigError(f"settings: Can't process: {key}")

    return settings


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _non_negative(where: str, fields: Mapping[str, Any], key: str, default: float) -> float:
    if key not in fields:
        return default
    value = fields[key]
    if not _is_number(value) or value < 0:
        raise ConfigError(f"{where}: {key} should be a non-negative number")
    return float(value)


def _flag(where: str, fields: Mapping[str, Any], key: str) -> bool:
    value = fields.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"{where}: {key} should be true or false")
    return value
