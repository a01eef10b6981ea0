import uuid

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from fanbench.bench import Bench
from fanbench.catalog import RIDE_BOOKING
from fanbench.operations import ConfigurationError, ExecutionStrategy, IncomparableError, Mode
from fanbench.report import ResultHistory, append_records, summarize

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")


class BenchmarkRun(BaseModel):
    operationSetId: str = RIDE_BOOKING
    strategyMode: str
    concurrentUsers: int = Field(default=1, ge=1)
    requestsPerUser: int = Field(default=10, ge=1)
    concurrencyLimit: int | None = Field(default=None, ge=1)


class Booking(BaseModel):
    operationSetId: str = RIDE_BOOKING


def _bench(request: Request) -> Bench:
    return request.app.state.bench


def _history(request: Request) -> ResultHistory:
    return request.app.state.history


def _check_set(bench: Bench, set_id: str) -> None:
    if not bench.config.has_set(set_id):
        raise HTTPException(status_code=404, detail=f"unknown operation set: {set_id}")


@router.post("/benchmark/run")
async def run_benchmark(p: BenchmarkRun, request: Request):
    bench = _bench(request)
    _check_set(bench, p.operationSetId)
    try:
        strategy = ExecutionStrategy(Mode.parse(p.strategyMode), p.concurrencyLimit)
        result = await bench.load_test(
            p.operationSetId, strategy, p.concurrentUsers, p.requestsPerUser
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _history(request).append(result)
    history_path = request.app.state.history_path
    if history_path:
        await run_in_threadpool(append_records, history_path, [result], _history(request).size)

    logger.info(
        "benchmark_run",
        operation_set=p.operationSetId,
        strategy=strategy.label,
        users=p.concurrentUsers,
        requests_per_user=p.requestsPerUser,
    )
    return result.summary()


@router.get("/benchmark/results")
def benchmark_results(request: Request):
    results = _history(request).snapshot()
    try:
        comparison = summarize(results).to_dict()
    except IncomparableError:
        comparison = None
    return {"results": [r.summary() for r in results], "comparison": comparison}


@router.get("/benchmark/comparison")
def latest_comparison(request: Request):
    try:
        return summarize(_history(request).snapshot()).to_dict()
    except IncomparableError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/benchmark/results")
def reset_results(request: Request):
    _history(request).clear()
    return {"ok": True}


async def _book(request: Request, p: Booking, mode: Mode):
    bench = _bench(request)
    _check_set(bench, p.operationSetId)
    started = bench.orchestrator.clock.now()
    rr = await bench.book(p.operationSetId, ExecutionStrategy(mode))
    total_ms = (bench.orchestrator.clock.now() - started) * 1000.0
    db_time = round(rr.total_duration_ms, 3)

    if not rr.ok:
        raise HTTPException(
            status_code=500,
            detail={
                "message": f"Failed to book ride ({mode.value})",
                "failedOperation": rr.failed_operation,
                "reason": rr.reason,
                "run": rr.to_dict(),
            },
        )

    count = len(rr.operations)
    return {
        "ride_id": f"ride_{uuid.uuid4().hex[:12]}",
        "performance": {
            "method": mode.value,
            "totalTime": round(total_ms, 3),
            "dbTime": db_time,
            "operations": count,
            "avgTimePerOperation": round(db_time / count, 3) if count else 0.0,
            "perOperation": [op.to_dict() for op in rr.operations],
        },
    }


@router.post("/rides/book-sequential")
async def book_sequential(request: Request, p: Booking | None = None):
    return await _book(request, p or Booking(), Mode.SEQUENTIAL)


@router.post("/rides/book-parallel")
async def book_parallel(request: Request, p: Booking | None = None):
    return await _book(request, p or Booking(), Mode.CONCURRENT)
