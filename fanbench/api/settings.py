import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _flag(name: str) -> bool:
    return os.getenv(name, "0").lower() in {"1", "true", "yes"}


class ApiSettings(BaseModel):
    config_path: str | None = Field(default_factory=lambda: os.getenv("FANBENCH_CONFIG") or None)
    history_path: str | None = Field(
        default_factory=lambda: os.getenv("FANBENCH_HISTORY_PATH") or None
    )
    log_level: str = Field(default_factory=lambda: os.getenv("FANBENCH_LOG_LEVEL", "INFO"))
    log_json: bool = Field(default_factory=lambda: _flag("FANBENCH_LOG_JSON"))


@lru_cache
def get_settings() -> ApiSettings:
    return ApiSettings()
