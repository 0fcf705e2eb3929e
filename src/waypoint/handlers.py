from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any
from typing import Callable
from typing import Mapping

from .types import ConfigurationError

if TYPE_CHECKING:
    from .app import Waypoint
    from .types import Request
    from .types import Response

Handler = Callable[["Request", "Response", "Waypoint"], Any]
HandlerRef = Handler | str


@dataclass(slots=True, frozen=True)
class NamedHandler:
    """A ``Class@method`` descriptor resolved to its class.

    A fresh instance is created on every call.
    """

    cls: type
    method: str

    def __call__(self, request: "Request", response: "Response", app: "Waypoint") -> Any:
        return getattr(self.cls(), self.method)(request, response, app)

    def __str__(self) -> str:
        return f"{self.cls.__name__}@{self.method}"


def describe(handler: Handler) -> str:
    if isinstance(handler, NamedHandler):
        return str(handler)
    module = getattr(handler, "__module__", None) or ""
    name = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    return f"{module}.{name}" if module else name


class HandlerRegistry:
    def __init__(self, controllers: Any = None, middlewares: Any = None):
        self.controllers = controllers
        self.middlewares = middlewares

    def controller(self, ref: HandlerRef) -> Handler:
        return self._resolve(ref, self.controllers, "controller")

    def middleware(self, ref: HandlerRef) -> Handler:
        return self._resolve(ref, self.middlewares, "middleware")

    def _resolve(self, ref: HandlerRef, namespace: Any, kind: str) -> Handler:
        if not isinstance(ref, str):
            if not callable(ref):
                raise ConfigurationError(f"{kind} must be callable or 'Class@method': {ref!r}")
            return ref

        class_name, sep, method = ref.partition("@")
        if not sep or not class_name or not method:
            raise ConfigurationError(f"Bad {kind} descriptor: {ref!r}, expected 'Class@method'")
        if namespace is None:
            raise ConfigurationError(f"No {kind} namespace configured for: {ref}")

        if isinstance(namespace, Mapping):
            cls = namespace.get(class_name)
        else:
            cls = getattr(namespace, class_name, None)
        if not isinstance(cls, type):
            raise ConfigurationError(f"{kind} class not found: {class_name}")
        if not callable(getattr(cls, method, None)):
            raise ConfigurationError(f"{kind} method not found: {ref}")
        return NamedHandler(cls, method)
