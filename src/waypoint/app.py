import logging

from typing import Any
from typing import Callable
from typing import Iterable
from typing import Sequence
from wsgiref.simple_server import make_server

from pydantic import BaseModel

from .blocklist import IPBlocklist
from .cache import RouteCache
from .config import Settings
from .context import Context
from .errors import ErrorCallback
from .errors import ErrorHandler
from .errors import error_page
from .handlers import HandlerRef
from .handlers import HandlerRegistry
from .http import request_from_environ
from .http import write_response
from .log import RequestLog
from .log import configure_logging
from .middleware import MiddlewareOutcome
from .ratelimit import RateLimiter
from .router import RouteMatch
from .router import Router
from .router import normalize_path
from .storage import Store
from .storage import build_store
from .types import Redirect
from .types import Request
from .types import Response

logger = logging.getLogger(__name__)

RouteTuple = Sequence[Any]


class Waypoint:
    def __init__(
        self,
        settings: Settings | None = None,
        controllers: Any = None,
        middlewares: Any = None,
        rate_limit_store: Store | None = None,
        blocklist_store: Store | None = None,
    ) -> None:
        self.settings = settings if settings is not None else Settings.load()
        cache = RouteCache(self.settings.route_cache_dir) if self.settings.route_cache else None
        self.router = Router(HandlerRegistry(controllers, middlewares), cache)
        self.errors = ErrorHandler(self.settings)
        self.request_log = RequestLog(self.settings)
        self.limiter = self._build_limiter(rate_limit_store)
        self.blocklist = self._build_blocklist(blocklist_store)
        self._startup: list[Callable[[], None]] = []
        self._shutdown: list[Callable[[], None]] = []
        configure_logging(self.settings)

    def _build_limiter(self, store: Store | None) -> RateLimiter | None:
        s = self.settings
        if s.rate_limit <= 0:
            return None
        if store is None:
            store = build_store(s.rate_limit_driver, s.rate_limit_file, s.redis_url, "waypoint:ratelimit:")
        return RateLimiter(store, s.rate_limit) if store is not None else None

    def _build_blocklist(self, store: Store | None) -> IPBlocklist | None:
        s = self.settings
        if not s.ip_block:
            return None
        if store is None:
            store = build_store(s.ip_block_driver, s.ip_block_file, s.redis_url, "waypoint:blocked:")
        return IPBlocklist(store) if store is not None else None

    # registration

    def route(
        self,
        method: str | Iterable[str],
        path: str,
        controller: HandlerRef | None = None,
        middlewares: HandlerRef | Iterable[HandlerRef] | None = None,
    ) -> "Waypoint":
        self.router.add(method, path, controller, middlewares)
        return self

    def route_group(
        self,
        main: RouteTuple,
        subs: Iterable[RouteTuple],
        inherit_middlewares: bool = False,
    ) -> "Waypoint":
        self.route(*main)
        prefix = normalize_path(main[1]).rstrip("/")
        parent = _as_list(main[3]) if len(main) > 3 else []

        for sub in subs:
            method, path, controller = sub[0], sub[1], sub[2]
            middlewares = _as_list(sub[3]) if len(sub) > 3 else []
            if inherit_middlewares:
                middlewares = parent + middlewares
            self.route(method, f"{prefix}/{path.strip('/')}", controller, middlewares)
        return self

    def routes(self, routes: Iterable[RouteTuple]) -> "Waypoint":
        for route in routes:
            self.route(*route)
        return self

    def get(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "GET", middlewares)

    def post(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "POST", middlewares)

    def put(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "PUT", middlewares)

    def patch(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "PATCH", middlewares)

    def delete(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "DELETE", middlewares)

    def options(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "OPTIONS", middlewares)

    def head(self, path: str, middlewares: Iterable[HandlerRef] = ()) -> Callable:
        return self._route(path, "HEAD", middlewares)

    def _route(self, path: str, method: str, middlewares: Iterable[HandlerRef]) -> Callable:
        def decorator(fn: Callable) -> Callable:
            self.route(method, path, fn, list(middlewares))
            return fn
        return decorator

    def error_handler(self, fn: ErrorCallback) -> ErrorCallback:
        if not callable(fn):
            raise TypeError("Custom error handler must be callable.")
        self.errors.callback = fn
        return fn

    def on_startup(self, fn: Callable[[], None]) -> Callable[[], None]:
        self._startup.append(fn)
        return fn

    def on_shutdown(self, fn: Callable[[], None]) -> Callable[[], None]:
        self._shutdown.append(fn)
        return fn

    def clear_route_cache(self) -> int:
        if self.router.cache is None:
            return RouteCache(self.settings.route_cache_dir).clear()
        return self.router.cache.clear()

    # dispatch

    def handle(self, request: Request) -> Response:
        request.context = Context.for_request(
            self.settings, request.resolve_client_ip(self.settings.trusted_proxies)
        )
        response = Response()
        try:
            return self._dispatch(request, response)
        except Exception as e:
            return self.errors.handle(self, request, response, e)

    def _dispatch(self, request: Request, response: Response) -> Response:
        ip = request.context.client_ip

        if self.blocklist is not None and self.blocklist.is_blocked(ip):
            logger.info("Blocked request from %s", ip)
            return error_page(request, response, 403, self.settings)

        if self.limiter is not None and self.limiter.applies_to(request.method):
            record = self.limiter.hit(ip)
            for name, value in record.headers().items():
                response.set_header(name, value)
            if record.exceeded:
                logger.info("Rate limit exceeded for %s", ip)
                return error_page(request, response, 429, self.settings)

        redirect: Redirect | None = None
        match = self.router.match(request.method, request.path)
        if match is None:
            response = error_page(request, response, 404, self.settings)
        elif match.method_not_allowed:
            response = error_page(request, response, 405, self.settings)
        else:
            request.path_params = match.attributes
            halted, redirect = self._run_middlewares(match, request, response)
            if not halted:
                if self._in_maintenance(request, match):
                    response = error_page(request, response, 503, self.settings)
                else:
                    result = match.entry.controller(request, response, self)
                    response = self.fold_result(response, result)

        self.request_log.record(request, response, request.context.elapsed())

        if redirect is not None:
            response.redirect(redirect.url, redirect.status_code, redirect.seconds)
        return response

    def _run_middlewares(
        self,
        match: RouteMatch,
        request: Request,
        response: Response,
    ) -> tuple[bool, Redirect | None]:
        for mw in match.entry.middlewares:
            outcome = mw(request, response, self)
            if isinstance(outcome, MiddlewareOutcome) and outcome.continue_requested():
                request.middleware_params.update(outcome.parameters())
                continue
            if isinstance(outcome, MiddlewareOutcome):
                return True, outcome.redirect_requested()
            return True, None
        return False, None

    def _in_maintenance(self, request: Request, match: RouteMatch) -> bool:
        s = self.settings
        if not s.maintenance_mode:
            return False
        allowed = {normalize_path(p) for p in s.maintenance_excluded_routes}
        if s.maintenance_bypass:
            allowed.add(normalize_path(s.maintenance_bypass))
        return match.pattern not in allowed and normalize_path(request.path) not in allowed

    def fold_result(self, response: Response, result: Any) -> Response:
        if result is None or result is response:
            return response
        if isinstance(result, Response):
            for name, value in response.headers.items():
                result.headers.setdefault(name, value)
            return result
        if isinstance(result, (str, bytes)):
            return response.send(result)
        if isinstance(result, (BaseModel, dict, list)):
            return response.send_json(result)
        return response.send_json(result)

    # hosting

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        request = request_from_environ(environ)
        return write_response(start_response, request.method, self.handle(request))

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        for fn in self._startup:
            fn()
        try:
            with make_server(host, port, self) as server:
                print(f"Waypoint running at http://{host}:{port}")
                try:
                    server.serve_forever()
                except KeyboardInterrupt:
                    print("\nShutting down...")
        finally:
            for fn in self._shutdown:
                fn()


def _as_list(refs: Any) -> list[HandlerRef]:
    if refs is None:
        return []
    if isinstance(refs, str) or callable(refs):
        return [refs]
    return list(refs)
