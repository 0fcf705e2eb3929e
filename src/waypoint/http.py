from typing import Any
from typing import Callable
from typing import Iterable

from .types import Request
from .types import Response

STATUS_PHRASES = {
    200: "OK",
    201: "Created",
    202: "Accepted",
    204: "No Content",
    206: "Partial Content",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    409: "Conflict",
    410: "Gone",
    412: "Precondition Failed",
    415: "Unsupported Media Type",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
}

_BODYLESS = frozenset({204, 304})


def phrase(status: int) -> str:
    return STATUS_PHRASES.get(status, "Unknown")


def request_from_environ(environ: dict[str, Any]) -> Request:
    headers: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").lower()] = value
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
            headers[key.replace("_", "-").lower()] = value

    body = b""
    length = environ.get("CONTENT_LENGTH")
    if length and environ.get("wsgi.input") is not None:
        body = environ["wsgi.input"].read(int(length))

    path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
    # PEP 3333 native strings carry the raw bytes as latin-1
    path = path.encode("latin-1").decode("utf-8", "replace")
    return Request(
        method=environ.get("REQUEST_METHOD", "GET").upper(),
        path=path or "/",
        headers=headers,
        query_string=environ.get("QUERY_STRING", ""),
        body=body,
        remote_addr=environ.get("REMOTE_ADDR", ""),
    )


def write_response(
    start_response: Callable[..., Any],
    method: str,
    response: Response,
) -> Iterable[bytes]:
    status, headers, body = response.finalize()
    if method == "HEAD" or status in _BODYLESS:
        body = b""
    start_response(f"{status} {phrase(status)}", list(headers.items()))
    return [body]
