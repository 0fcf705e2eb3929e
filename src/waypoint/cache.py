import hashlib
import logging

from pathlib import Path

from pydantic import BaseModel
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class CachedEntry(BaseModel):
    controller: str
    middlewares: list[str] = []


class RouteCacheEntry(BaseModel):
    attributes: dict[str, str]
    route_path: str
    route: dict[str, CachedEntry]


class RouteCache:
    """Ambiguity-resolution results, one JSON file per normalized path.

    Entries are never invalidated when the route table changes; call
    ``clear()`` after deploying a new route table.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def key(self, path: str) -> str:
        return hashlib.sha1(path.encode()).hexdigest()

    def _file(self, path: str) -> Path:
        return self.directory / f"{self.key(path)}.json"

    def get(self, path: str) -> RouteCacheEntry | None:
        file = self._file(path)
        try:
            raw = file.read_text()
        except FileNotFoundError:
            return None
        try:
            return RouteCacheEntry.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable route cache file %s", file)
            return None

    def put(self, path: str, entry: RouteCacheEntry) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._file(path).write_text(entry.model_dump_json())

    def clear(self) -> int:
        if not self.directory.is_dir():
            return 0
        removed = 0
        for file in self.directory.glob("*.json"):
            file.unlink(missing_ok=True)
            removed += 1
        return removed
