import json
import logging

from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from .config import Settings
from .types import Request
from .types import Response

logger = logging.getLogger(__name__)
error_logger = logging.getLogger("waypoint.errors")


def configure_logging(settings: Settings) -> None:
    if settings.error_log is None:
        return
    target = str(Path(settings.error_log).resolve())
    for handler in error_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return
    Path(target).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    error_logger.addHandler(handler)


class RequestLog:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.directory = Path(settings.log_dir)
        self.tz = ZoneInfo(settings.timezone) if settings.timezone else None

    def should_log(self, request: Request, response: Response) -> bool:
        if not self.settings.log_enabled or ".map" in request.path:
            return False
        if self.settings.log_level == "debug":
            return True
        if self.settings.log_level == "error":
            return response.status_code >= 400
        return False

    def record(self, request: Request, response: Response, elapsed: float) -> None:
        if not self.should_log(request, response):
            return
        try:
            self._write(request, response, elapsed)
        except Exception:
            error_logger.exception("Request log failed for %s %s", request.method, request.path)

    def _write(self, request: Request, response: Response, elapsed: float) -> None:
        now = datetime.now(self.tz)
        entry = {
            "request": {
                "date": now.strftime("%Y-%m-%d %H:%M:%S"),
                "method": request.method,
                "uri": request.path,
                "query_string": request.query_string,
                "header": request.headers,
                "get_params": request.query_params,
                "post_params": request.form,
                "middleware_params": request.middleware_params,
            },
            "response": {
                "status_code": response.status_code,
                "body": response.body.decode("utf-8", "replace"),
                "redirection": response.redirection.url if response.redirection else None,
                "execution_time": f"{elapsed:.4f}",
            },
        }
        self.directory.mkdir(parents=True, exist_ok=True)
        ip = (request.client_ip or "unknown").replace(":", "_")
        name = f"{response.status_code}_{now:%Y%m%d}_{ip}.log"
        with open(self.directory / name, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")
        logger.debug("Logged %s %s -> %d", request.method, request.path, response.status_code)
