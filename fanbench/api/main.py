from pathlib import Path

from fastapi import FastAPI

from fanbench.api.routes import router
from fanbench.api.settings import get_settings
from fanbench.bench import Bench
from fanbench.log import configure_logging
from fanbench.report import ResultHistory


def create_app(bench: Bench | None = None, history: ResultHistory | None = None) -> FastAPI:
    settings = get_settings()
    bench = bench or Bench.from_path(settings.config_path)

    if history is None:
        history = _history(settings.history_path, bench.config.settings.history_size)

    app = FastAPI(title="fanbench")
    app.state.bench = bench
    app.state.history = history
    app.state.history_path = settings.history_path
    app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok", "operationSets": bench.config.set_ids()}

    return app


def _history(path: str | None, size: int) -> ResultHistory:
    if path and Path(path).expanduser().exists():
        return ResultHistory.load(path, size)
    return ResultHistory(size)


def build_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    return create_app()
