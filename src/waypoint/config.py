import json
import os
import re

from pathlib import Path
from typing import Any
from typing import Mapping

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import ValidationInfo
from pydantic import field_validator

ENV_PREFIX = "WAYPOINT_"

_ENV_LINE_RE = re.compile(r"^[ \t]*([\w.-]+)[ \t]*=[ \t]*(.*?)[ \t]*(?:(?=#)|$)", re.MULTILINE)


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    dev_mode: bool = False
    timezone: str | None = None
    default_language: str = "en"

    log_enabled: bool = True
    log_level: str = "error"
    log_dir: Path = Path("storage/logs")
    error_log: Path | None = None

    route_cache: bool = False
    route_cache_dir: Path = Path("storage/cache/routes")

    rate_limit: int = 0
    rate_limit_driver: str = "file"
    rate_limit_file: Path = Path("storage/rate_limit.json")

    ip_block: bool = False
    ip_block_driver: str = "file"
    ip_block_file: Path = Path("storage/blocked_ips.json")

    redis_url: str = "redis://localhost:6379/0"
    trusted_proxies: list[str] = []

    maintenance_mode: bool = False
    maintenance_bypass: str | None = None
    maintenance_excluded_routes: list[str] = []

    error_pages: dict[int, str] = {}

    @field_validator("maintenance_excluded_routes", "trusted_proxies", "error_pages", mode="before")
    @classmethod
    def _decode_json(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return {} if info.field_name == "error_pages" else []
            return json.loads(value)
        return value

    @field_validator("log_level", "rate_limit_driver", "ip_block_driver", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @classmethod
    def load(
        cls,
        env_file: str | Path | None = ".env",
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "Settings":
        values: dict[str, Any] = {}
        if env_file is not None:
            values.update(read_env_file(env_file))
        environ = os.environ if environ is None else environ
        for key, value in environ.items():
            if key.startswith(ENV_PREFIX):
                values[key[len(ENV_PREFIX):]] = value
        values = {k.lower(): v for k, v in values.items()}
        values.update(overrides)
        return cls.model_validate(values)


def read_env_file(path: str | Path) -> dict[str, str]:
    path = Path(path)
    if not path.is_file():
        return {}
    return {
        key: value.strip("\"' \t\n\r\0\x0b")
        for key, value in _ENV_LINE_RE.findall(path.read_text())
    }
