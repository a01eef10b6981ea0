from __future__ import annotations

import pytest

from fanbench.log import configure_logging


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging() -> None:
    configure_logging("WARNING")
