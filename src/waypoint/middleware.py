from dataclasses import dataclass
from dataclasses import field
from typing import Any

from .types import Redirect


@dataclass(slots=True, frozen=True)
class MiddlewareOutcome:
    def continue_requested(self) -> bool:
        return False

    def parameters(self) -> dict[str, Any]:
        return {}

    def redirect_requested(self) -> Redirect | None:
        return None


@dataclass(slots=True, frozen=True)
class Continue(MiddlewareOutcome):
    params: dict[str, Any] = field(default_factory=dict)

    def continue_requested(self) -> bool:
        return True

    def parameters(self) -> dict[str, Any]:
        return self.params


@dataclass(slots=True, frozen=True)
class Halt(MiddlewareOutcome):
    redirect: Redirect | None = None

    def redirect_requested(self) -> Redirect | None:
        return self.redirect


class Middleware:
    """Optional base for class middlewares referenced as ``Class@method``."""

    def next(self, **params: Any) -> Continue:
        return Continue(params)

    def halt(self) -> Halt:
        return Halt()

    def redirect(self, url: str, status_code: int = 302) -> Halt:
        return Halt(Redirect(url, status_code))
