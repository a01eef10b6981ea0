# tests/test_cli.py
from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from fanbench.cli import run_cli
from fanbench.cli.commands import _write_output
from fanbench.operations import ConfigurationError


def _write_json_config(path: Path, operation_sets: dict, settings: dict | None = None) -> None:
    raw: dict = {"operation_sets": operation_sets}
    if settings:
        raw["settings"] = settings
    path.write_text(json.dumps(raw), encoding="utf-8")


def _ops(*specs: tuple[str, float], **flags: dict) -> dict:
    operations = []
    for name, ms in specs:
        op = {"name": name, "statement": f"SELECT '{name}'", "latency_ms": ms}
        op.update(flags.get(name, {}))
        operations.append(op)
    return {"operations": operations}


@pytest.fixture
def cfg(tmp_path: Path) -> Path:
    path = tmp_path / "fanbench.json"
    _write_json_config(
        path,
        {
            "quick": _ops(("a", 10), ("b", 20), ("c", 15)),
            "broken": _ops(
                ("first", 1), ("bad", 1), ("last", 1), bad={"fail": True}
            ),
        },
    )
    return path


def test_list_prints_one_set_per_line(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "list"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["broken", "quick"]


def test_list_without_config_uses_built_in_set(capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["list"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["ride_booking"]


def test_show_prints_operations_in_order(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "show", "quick"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert out == ["a: query 10ms", "b: query 20ms", "c: query 15ms"]


def test_book_reports_each_operation(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "book", "quick", "--mode", "parallel"])
    out = capsys.readouterr().out.splitlines()

    assert code == 0
    assert [line.split(",")[0] for line in out[:3]] == ["OK a", "OK b", "OK c"]
    assert out[-1].startswith("concurrent total")
    assert out[-1].endswith("success")


def test_book_failure_skips_remaining(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "book", "broken"])
    out = capsys.readouterr().out.splitlines()

    assert code == 1
    assert out[0].startswith("OK first")
    assert out[1].startswith("FAIL bad")
    assert out[2] == "SKIP last"


def test_run_json_summary(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(
        ["--config", str(cfg), "run", "quick", "--users", "3", "--requests", "2", "--json"]
    )
    summary = json.loads(capsys.readouterr().out)

    assert code == 0
    assert summary["totalRequests"] == 6
    assert summary["successRate"] == 100.0
    assert summary["mode"] == "concurrent"
    assert summary["operations"] == ["a", "b", "c"]


def test_run_with_failures_returns_1(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "run", "broken", "--users", "2", "--requests", "1"])
    out = capsys.readouterr().out

    assert code == 1
    assert "0/2 ok" in out


def test_compare_reports_improvement(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(
        [
            "--config",
            str(cfg),
            "compare",
            "quick",
            "--users",
            "1,2",
            "--requests",
            "2",
            "--json",
        ]
    )
    reports = json.loads(capsys.readouterr().out)

    assert code == 0
    assert [r["concurrentUsers"] for r in reports] == [1, 2]
    assert all(r["improvementPercent"] > 0 for r in reports)


def test_compare_writes_history_and_csv(
    cfg: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    history = tmp_path / "history.json"
    output = tmp_path / "out" / "results.csv"

    code = run_cli(
        [
            "--config",
            str(cfg),
            "compare",
            "quick",
            "--users",
            "2",
            "--requests",
            "1",
            "--history",
            str(history),
            "--output",
            str(output),
        ]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "Improvement" in out
    with open(output, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [row["mode"] for row in rows] == ["sequential", "concurrent"]

    code = run_cli(["history", str(history)])
    lines = capsys.readouterr().out.splitlines()

    assert code == 0
    assert len(lines) == 2
    assert "sequential" in lines[0]
    assert "concurrent" in lines[1]


def test_history_size_setting_caps_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cfg = tmp_path / "fanbench.json"
    _write_json_config(cfg, {"quick": _ops(("a", 1))}, settings={"history_size": 2})
    history = tmp_path / "history.json"

    for _ in range(3):
        run_cli(["--config", str(cfg), "run", "quick", "--users", "1", "--requests", "1",
                 "--history", str(history)])
    _ = capsys.readouterr()

    data = json.loads(history.read_text(encoding="utf-8"))
    assert len(data["results"]) == 2


def test_invalid_config_path_returns_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    missing = tmp_path / "missing.json"

    code = run_cli(["--config", str(missing), "list"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err != ""


def test_unknown_set_returns_2(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "run", "nope"])
    captured = capsys.readouterr()

    assert code == 2
    assert "nope" in captured.err


def test_unknown_mode_returns_2(cfg: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = run_cli(["--config", str(cfg), "run", "quick", "--mode", "batch"])
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err != ""


def test_unsupported_output_extension_returns_2(
    cfg: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = run_cli(
        ["--config", str(cfg), "run", "quick", "--users", "1", "--requests", "1",
         "--output", str(tmp_path / "out.xml")]
    )
    captured = capsys.readouterr()

    assert code == 2
    assert captured.err != ""


def test_compare_with_no_user_counts_is_a_usage_error(
    cfg: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = tmp_path / "o.csv"

    with pytest.raises(SystemExit) as exc:
        run_cli(
            ["--config", str(cfg), "compare", "quick", "--users", ",", "--requests", "1",
             "--output", str(output)]
        )
    captured = capsys.readouterr()

    assert exc.value.code == 2
    assert "at least one integer" in captured.err
    assert not output.exists()


def test_csv_output_without_results_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        _write_output(tmp_path / "empty.csv", [])
