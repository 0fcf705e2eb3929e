import json

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Any
from urllib.parse import parse_qs

from pydantic import BaseModel

if TYPE_CHECKING:
    from .context import Context


class WaypointError(Exception):
    pass


class ConfigurationError(WaypointError):
    pass


class InvalidMethod(ConfigurationError):
    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"Invalid method: {method} in: {path}")


class HTTPException(WaypointError):
    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


@dataclass(slots=True, frozen=True)
class Redirect:
    url: str
    status_code: int = 302
    seconds: int = 0


@dataclass(slots=True)
class Request:
    method: str
    path: str
    headers: dict[str, str]
    query_string: str = ""
    body: bytes = b""
    remote_addr: str = ""
    path_params: dict[str, str] = field(default_factory=dict)
    middleware_params: dict[str, Any] = field(default_factory=dict)
    context: "Context | None" = field(default=None, repr=False)
    _query: dict[str, list[str]] | None = field(default=None, repr=False)
    _form: dict[str, list[str]] | None = field(default=None, repr=False)
    _json: Any = field(default=None, repr=False)

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    @property
    def query_params(self) -> dict[str, list[str]]:
        if self._query is None:
            self._query = parse_qs(self.query_string)
        return self._query

    def query(self, name: str, default: str | None = None) -> str | None:
        values = self.query_params.get(name)
        return values[0] if values else default

    @property
    def form(self) -> dict[str, list[str]]:
        if self._form is None:
            content_type = self.headers.get("content-type", "")
            if content_type.startswith("application/x-www-form-urlencoded") and self.body:
                self._form = parse_qs(self.body.decode("utf-8", "replace"))
            else:
                self._form = {}
        return self._form

    def params(self) -> dict[str, str]:
        merged = {k: v[0] for k, v in self.query_params.items() if v}
        merged.update({k: v[0] for k, v in self.form.items() if v})
        return merged

    def param(self, name: str, default: str | None = None) -> str | None:
        return self.params().get(name, default)

    def json(self) -> Any:
        if self._json is None and self.body:
            self._json = json.loads(self.body)
        return self._json

    def accepts_json(self) -> bool:
        return "application/json" in self.headers.get("accept", "")

    @property
    def client_ip(self) -> str:
        if self.context is not None:
            return self.context.client_ip
        return self.resolve_client_ip()

    def resolve_client_ip(self, trusted_proxies: list[str] | None = None) -> str:
        """Client address, honoring ``Client-IP`` / ``X-Forwarded-For``.

        With ``trusted_proxies`` set, the headers are only read when the
        connecting peer is one of them; otherwise any peer may set them.
        """
        ip = None
        if not trusted_proxies or self.remote_addr in trusted_proxies:
            ip = self.headers.get("client-ip")
            if not ip:
                forwarded = self.headers.get("x-forwarded-for")
                ip = forwarded.split(",")[0].strip() if forwarded else None
        ip = ip or self.remote_addr
        return "127.0.0.1" if ip == "::1" else ip


@dataclass(slots=True)
class Response:
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    redirection: Redirect | None = None

    @classmethod
    def json(cls, data: Any, status_code: int = 200) -> "Response":
        response = cls(status_code=status_code)
        response.send_json(data)
        return response

    @classmethod
    def text(cls, content: str, status_code: int = 200) -> "Response":
        response = cls(status_code=status_code, headers={"content-type": "text/plain; charset=utf-8"})
        response.send(content)
        return response

    @classmethod
    def html(cls, content: str, status_code: int = 200) -> "Response":
        response = cls(status_code=status_code, headers={"content-type": "text/html; charset=utf-8"})
        response.send(content)
        return response

    @classmethod
    def empty(cls, status_code: int = 204) -> "Response":
        return cls(status_code=status_code)

    def set_status(self, code: int) -> "Response":
        self.status_code = code
        return self

    def set_header(self, line: str, value: str | None = None) -> "Response":
        if value is None:
            name, sep, value = line.partition(":")
            if not sep:
                raise ValueError(f"Bad header line: {line}")
        else:
            name = line
        self.headers[name.strip().lower()] = value.strip()
        return self

    def send(self, body: str | bytes = b"") -> "Response":
        if isinstance(body, str):
            body = body.encode()
        self.body += body
        self.headers.setdefault("content-type", "text/html; charset=utf-8")
        return self

    def send_json(self, data: Any) -> "Response":
        if isinstance(data, BaseModel):
            body = data.model_dump_json().encode()
        elif isinstance(data, list):
            items = [x.model_dump(mode="json") if isinstance(x, BaseModel) else x for x in data]
            body = json.dumps(items).encode()
        else:
            body = json.dumps(data).encode()
        self.headers["content-type"] = "application/json; charset=utf-8"
        self.body = body
        return self

    def redirect(self, url: str, status_code: int = 302, seconds: int = 0) -> "Response":
        self.redirection = Redirect(url, status_code, seconds)
        if not seconds:
            self.status_code = status_code
        return self

    def finalize(self) -> tuple[int, dict[str, str], bytes]:
        headers = dict(self.headers)
        if self.redirection is not None:
            if self.redirection.seconds > 0:
                headers["refresh"] = f"{self.redirection.seconds}; url={self.redirection.url}"
            else:
                headers["location"] = self.redirection.url
        headers["content-length"] = str(len(self.body))
        return self.status_code, headers, self.body
