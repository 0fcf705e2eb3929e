import logging
import re

from dataclasses import dataclass
from dataclasses import field
from typing import Iterable

from .cache import CachedEntry
from .cache import RouteCache
from .cache import RouteCacheEntry
from .handlers import Handler
from .handlers import HandlerRef
from .handlers import HandlerRegistry
from .handlers import describe
from .types import ConfigurationError
from .types import InvalidMethod

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD")
PARAM_PREFIX = ":"


@dataclass(slots=True, frozen=True)
class RouteEntry:
    controller: Handler
    middlewares: tuple[Handler, ...] = ()


@dataclass(slots=True)
class RouteMatch:
    pattern: str
    entry: RouteEntry | None
    attributes: dict[str, str] = field(default_factory=dict)
    method_not_allowed: bool = False
    cached: bool = field(default=False, compare=False)


def normalize_path(path: str) -> str:
    path = path.split("?", 1)[0]
    return "/" + path.strip("/")


def split_path(path: str) -> list[str]:
    if path == "/":
        return []
    return path.strip("/").split("/")


def similar_text(first: str, second: str) -> int:
    """Count of characters shared through recursive longest common substrings."""
    if not first or not second:
        return 0

    best = pos1 = pos2 = 0
    for i in range(len(first)):
        for j in range(len(second)):
            k = 0
            while i + k < len(first) and j + k < len(second) and first[i + k] == second[j + k]:
                k += 1
            if k > best:
                best, pos1, pos2 = k, i, j

    if not best:
        return 0
    return (
        best
        + similar_text(first[:pos1], second[:pos2])
        + similar_text(first[pos1 + best:], second[pos2 + best:])
    )


def similarity(first: str, second: str) -> float:
    total = len(first) + len(second)
    if not total:
        return 0.0
    return similar_text(first, second) * 2 * 100 / total


class Router:
    PARAM_RE = re.compile(r":[^/]+")
    SLASHES_RE = re.compile(r"/{2,}")

    def __init__(self, registry: HandlerRegistry | None = None, cache: RouteCache | None = None) -> None:
        self.registry = registry or HandlerRegistry()
        self.cache = cache
        self.routes: dict[str, dict[str, RouteEntry]] = {}
        self._dynamic: dict[str, list[str]] = {}

    def add(
        self,
        method: str | Iterable[str],
        path: str,
        controller: HandlerRef | None = None,
        middlewares: HandlerRef | Iterable[HandlerRef] | None = None,
    ) -> None:
        if controller is None:
            raise ConfigurationError(f"Controller is required in: {path}")

        if middlewares is None:
            middlewares = []
        elif isinstance(middlewares, str) or callable(middlewares):
            middlewares = [middlewares]
        else:
            middlewares = list(middlewares)

        if not isinstance(method, str):
            for m in method:
                self.add(m, path, controller, middlewares)
            return

        if method not in METHODS:
            raise InvalidMethod(method, path)

        path = normalize_path(path)
        resolved = [self.registry.middleware(m) for m in dict.fromkeys(middlewares)]
        entry = RouteEntry(
            controller=self.registry.controller(controller),
            middlewares=tuple(dict.fromkeys(resolved)),
        )

        if path not in self.routes:
            self.routes[path] = {}
            segments = split_path(path)
            if any(s.startswith(PARAM_PREFIX) for s in segments):
                self._dynamic[path] = segments
        self.routes[path][method] = entry

    def match(self, method: str, path: str) -> RouteMatch | None:
        path = normalize_path(path)

        if self.cache is not None:
            cached = self._from_cache(method, path)
            if cached is not None:
                return cached

        if path in self.routes:
            return self._result(path, method, {})

        segments = split_path(path)
        candidates: list[tuple[str, dict[str, str]]] = []
        for pattern, pattern_segments in self._dynamic.items():
            if len(pattern_segments) != len(segments):
                continue
            attributes = self._capture(pattern_segments, segments)
            if attributes is not None:
                candidates.append((pattern, attributes))

        if not candidates:
            return None
        if len(candidates) == 1:
            pattern, attributes = candidates[0]
            return self._result(pattern, method, attributes)

        pattern, attributes = self._resolve_ambiguity(path, candidates)
        if self.cache is not None:
            self.cache.put(path, self._cache_entry(pattern, attributes))
        return self._result(pattern, method, attributes)

    def _capture(self, pattern_segments: list[str], segments: list[str]) -> dict[str, str] | None:
        attributes: dict[str, str] = {}
        for expected, actual in zip(pattern_segments, segments):
            if expected.startswith(PARAM_PREFIX):
                attributes[expected[len(PARAM_PREFIX):]] = actual
            elif expected != actual:
                return None
        return attributes

    def _resolve_ambiguity(
        self,
        path: str,
        candidates: list[tuple[str, dict[str, str]]],
    ) -> tuple[str, dict[str, str]]:
        best = candidates[0]
        best_score = -1.0
        for candidate in candidates:
            stripped = self.SLASHES_RE.sub("/", self.PARAM_RE.sub("", candidate[0]))
            score = similarity(stripped, path)
            if score > best_score:
                best, best_score = candidate, score
        logger.debug("Ambiguous path %s resolved to %s (%.2f)", path, best[0], best_score)
        return best

    def _result(self, pattern: str, method: str, attributes: dict[str, str]) -> RouteMatch:
        entry = self.routes[pattern].get(method)
        return RouteMatch(
            pattern=pattern,
            entry=entry,
            attributes=attributes,
            method_not_allowed=entry is None,
        )

    def _cache_entry(self, pattern: str, attributes: dict[str, str]) -> RouteCacheEntry:
        route = {
            m: CachedEntry(
                controller=describe(entry.controller),
                middlewares=[describe(mw) for mw in entry.middlewares],
            )
            for m, entry in self.routes[pattern].items()
        }
        return RouteCacheEntry(attributes=attributes, route_path=pattern, route=route)

    def _from_cache(self, method: str, path: str) -> RouteMatch | None:
        cached = self.cache.get(path)
        if cached is None:
            return None
        if cached.route_path not in self.routes:
            logger.warning(
                "Stale route cache entry for %s points at unknown route %s; clear the route cache",
                path,
                cached.route_path,
            )
            return None
        result = self._result(cached.route_path, method, dict(cached.attributes))
        result.cached = True
        return result
