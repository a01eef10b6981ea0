from __future__ import annotations

import argparse
import asyncio
import csv
import json
import signal
import sys
from pathlib import Path
from typing import Any

from fanbench.bench import Bench
from fanbench.load import LoadTestResult
from fanbench.log import configure_logging
from fanbench.operations import ConfigurationError, ExecutionStrategy, IncomparableError, Mode
from fanbench.orchestrator import RunResult
from fanbench.report import ComparisonReport, append_records, load_records, summarize

from .args import build_parser


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        configure_logging(args.log_level, args.log_json)

        match args.command:
            case "book":
                return cmd_book(args)
            case "run":
                return cmd_run(args)
            case "compare":
                return cmd_compare(args)
            case "list":
                return cmd_list(args)
            case "show":
                return cmd_show(args)
            case "history":
                return cmd_history(args)
            case _:
                return 2

    except (ConfigurationError, IncomparableError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    except KeyError as exc:
        print(f"Unknown operation set: {exc.args[0]}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def main() -> None:
    raise SystemExit(run_cli())


def cmd_book(args: argparse.Namespace) -> int:
    bench = _bench(args)
    strategy = ExecutionStrategy(Mode.parse(args.mode), args.limit)
    rr = asyncio.run(bench.book(args.operation_set, strategy))
    _print_run(bench.operation_set(args.operation_set).names(), rr)
    return 0 if rr.ok else 1


def cmd_run(args: argparse.Namespace) -> int:
    bench = _bench(args)
    strategy = ExecutionStrategy(Mode.parse(args.mode), args.limit)
    bench.operation_set(args.operation_set)

    result = asyncio.run(_cancellable(bench, args, strategy, args.users))
    _record(args, bench, [result])

    if args.json:
        print(json.dumps(result.summary(), indent=2))
    else:
        _print_load(result)

    return _exit_code([result])


def cmd_compare(args: argparse.Namespace) -> int:
    bench = _bench(args)
    bench.operation_set(args.operation_set)
    sequential = ExecutionStrategy.sequential()
    concurrent = ExecutionStrategy.concurrent(args.limit)

    results: list[LoadTestResult] = []
    reports: list[ComparisonReport] = []
    for users in args.users:
        seq = asyncio.run(_cancellable(bench, args, sequential, users))
        par = asyncio.run(_cancellable(bench, args, concurrent, users))
        results.extend([seq, par])
        if seq.partial or par.partial:
            break
        reports.append(summarize([seq, par]))

    _record(args, bench, results)

    if args.json:
        print(json.dumps([report.to_dict() for report in reports], indent=2))
    else:
        for result in results:
            _print_load(result)
        _print_reports(reports)

    return _exit_code(results)


def cmd_list(args: argparse.Namespace) -> int:
    bench = _bench(args)
    for set_id in bench.config.set_ids():
        print(set_id)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    bench = _bench(args)
    for op in bench.operation_set(args.operation_set):
        flags = " independent" if op.may_fail_independently else ""
        print(f"{op.name}: {op.kind} {op.latency_ms:g}ms{flags}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    for record in load_records(args.path):
        print(
            f"{record.get('timestamp', '?')} {record.get('strategyLabel', '?')} "
            f"users={record.get('concurrentUsers')} requests={record.get('requestsPerUser')} "
            f"avg={record.get('avgTotalDurationMs')}ms p95={record.get('p95Ms')}ms "
            f"success={record.get('successRate')}%"
        )
    return 0


def _bench(args: argparse.Namespace) -> Bench:
    return Bench.from_path(args.config, jitter_ms=args.jitter_ms, seed=args.seed)


async def _cancellable(
    bench: Bench, args: argparse.Namespace, strategy: ExecutionStrategy, users: int
) -> LoadTestResult:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        # no signal handlers outside the main thread or on Windows
        pass

    try:
        return await bench.load_test(
            args.operation_set,
            strategy,
            users,
            args.requests,
            ramp_up_s=args.ramp_up,
            cancel=cancel,
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def _record(args: argparse.Namespace, bench: Bench, results: list[LoadTestResult]) -> None:
    if args.history:
        append_records(args.history, results, bench.config.settings.history_size)
    if args.output:
        _write_output(Path(args.output), [result.summary() for result in results])


def _write_output(path: Path, rows: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    match path.suffix:
        case ".json":
            path.write_text(json.dumps({"results": rows}, indent=2), encoding="utf-8")
        case ".csv":
            if not rows:
                raise ConfigurationError(f"No results to write to {path}")
            flat = [{k: v for k, v in row.items() if k != "operations"} for row in rows]
            with open(path, "w", newline="", encoding="utf-8") as f:
                w = csv.DictWriter(f, fieldnames=list(flat[0].keys()))
                w.writeheader()
                w.writerows(flat)
        case _:
            raise ConfigurationError(
                f"Non supported output extension: {path.suffix}\n Expected format: .json, .csv"
            )


def _exit_code(results: list[LoadTestResult]) -> int:
    if any(result.partial for result in results):
        return 130
    return 1 if any(result.failed_runs for result in results) else 0


def _print_run(names: list[str], rr: RunResult) -> None:
    ran = {op.name: op for op in rr.operations}
    for name in names:
        if name in ran:
            op = ran[name]
            status = "OK" if op.ok else "FAIL"
            line = f"{status} {name}, +{op.start_offset_ms:.1f}ms, {op.duration_ms:.1f}ms"
            if op.reason:
                line += f", {op.reason}"
            print(line)
        else:
            print(f"SKIP {name}")
    print(f"{rr.mode.value} total {rr.total_duration_ms:.1f}ms, {rr.outcome.value}")


def _print_load(result: LoadTestResult) -> None:
    partial = " (partial)" if result.partial else ""
    print(
        f"{result.strategy_label} users={result.concurrent_users} "
        f"requests={result.requests_per_user}{partial}: "
        f"{result.successful_runs}/{result.total_runs} ok ({result.success_rate:.2f}%), "
        f"avg {result.avg_total_duration_ms:.1f}ms, p50 {result.p50_ms:.1f}ms, "
        f"p95 {result.p95_ms:.1f}ms, p99 {result.p99_ms:.1f}ms, "
        f"{result.throughput_per_second:.1f} req/s"
    )


def _print_reports(reports: list[ComparisonReport]) -> None:
    if not reports:
        return
    print("Users\tSequential\tConcurrent\tImprovement")
    for report in reports:
        print(
            f"{report.concurrent_users}\t{report.sequential.avg_ms:.1f}ms\t\t"
            f"{report.concurrent.avg_ms:.1f}ms\t\t{report.improvement_percent:.1f}%"
        )
