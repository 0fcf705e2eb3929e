import html
import logging
import traceback

from typing import TYPE_CHECKING
from typing import Any
from typing import Callable

from pydantic import ValidationError

from .config import Settings
from .http import phrase
from .types import HTTPException
from .types import Request
from .types import Response

if TYPE_CHECKING:
    from .app import Waypoint

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES = {
    400: "The request could not be understood.",
    401: "Authentication is required to access this resource.",
    403: "You do not have permission to access this resource.",
    404: "The page you are looking for could not be found.",
    405: "This method is not allowed for the requested resource.",
    429: "Too many requests, please slow down.",
    500: "Something went wrong on our side.",
    503: "We are down for maintenance, please check back soon.",
}

HANDLED_STATUS = frozenset({400, 401, 403, 404, 405, 422, 429, 503})

ErrorCallback = Callable[[Request, Response, int, str, str, int], Any]

_PAGE = """<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>{status} {title}</title>
<style>
body {{ font-family: monospace; background: #151515; color: #b9b9b9; padding: 1rem; }}
h1 {{ margin: 0; color: #fff; }}
h2 {{ margin: 0; color: #434343; }}
</style>
</head>
<body>
<h1>{status}</h1>
<h2>{title}</h2>
<pre>{message}</pre>
</body>
</html>"""


def render_page(status: int, message: str) -> str:
    return _PAGE.format(status=status, title=html.escape(phrase(status)), message=html.escape(message))


def error_page(request: Request, response: Response, status: int, settings: Settings) -> Response:
    """Turn ``response`` into the page for a policy termination."""
    response.set_status(status)
    response.body = b""
    message = DEFAULT_MESSAGES.get(status, phrase(status))
    if request.accepts_json():
        return response.send_json({"error": message, "status": status})
    response.headers["content-type"] = "text/html; charset=utf-8"
    custom = settings.error_pages.get(status)
    return response.send(custom if custom is not None else render_page(status, message))


class ErrorHandler:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.callback: ErrorCallback | None = None

    def handle(self, app: "Waypoint", request: Request, response: Response, exc: Exception) -> Response:
        status, message = self._describe(exc)
        file, line = _origin(exc)
        if status >= 500:
            logger.exception("Unhandled error on %s %s", request.method, request.path, exc_info=exc)
        else:
            logger.info("%s %s failed with %d: %s", request.method, request.path, status, message)

        response = Response(headers={k: v for k, v in response.headers.items() if k.startswith("x-ratelimit")})
        if self.callback is not None:
            result = self.callback(request, response, status, message, file, line)
            return app.fold_result(response, result)

        if self.settings.dev_mode:
            message = f"{file}:{line} - {message}"
        response.set_status(status)
        if request.accepts_json():
            return response.send_json({"error": message})
        return response.send(render_page(status, f"{message} ({status})"))

    def _describe(self, exc: Exception) -> tuple[int, str]:
        if isinstance(exc, HTTPException):
            status = exc.status_code if exc.status_code in HANDLED_STATUS else 500
            return status, exc.detail or phrase(status)
        if isinstance(exc, ValidationError):
            return 422, str(exc)
        if self.settings.dev_mode:
            return 500, f"{type(exc).__name__}: {exc}"
        return 500, phrase(500)


def _origin(exc: BaseException) -> tuple[str, int]:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "<unknown>", 0
    last = frames[-1]
    return last.filename, last.lineno or 0
