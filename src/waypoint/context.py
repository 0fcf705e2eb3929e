import time

from dataclasses import dataclass
from dataclasses import field
from typing import Any

from .config import Settings


@dataclass(slots=True)
class Context:
    """Per-request state handed through the pipeline and dropped afterwards."""

    settings: Settings
    client_ip: str
    language: str
    started_at: float = field(default_factory=time.perf_counter)
    session: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_request(cls, settings: Settings, client_ip: str) -> "Context":
        return cls(settings=settings, client_ip=client_ip, language=settings.default_language)

    def elapsed(self) -> float:
        return time.perf_counter() - self.started_at
