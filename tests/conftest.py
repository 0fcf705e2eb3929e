from pathlib import Path
from typing import Any

import pytest

from waypoint import Request
from waypoint import Settings
from waypoint import Waypoint


def make_request(
    method: str,
    path: str,
    headers: dict[str, str] | None = None,
    remote_addr: str = "10.0.0.1",
    **kwargs: Any,
) -> Request:
    return Request(method=method, path=path, headers=headers or {}, remote_addr=remote_addr, **kwargs)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        log_enabled=False,
        log_dir=tmp_path / "logs",
        route_cache_dir=tmp_path / "cache",
        rate_limit_file=tmp_path / "rate_limit.json",
        ip_block_file=tmp_path / "blocked.json",
    )


@pytest.fixture
def app(settings: Settings) -> Waypoint:
    return Waypoint(settings)
