import json
import logging
import threading
import time

from pathlib import Path
from typing import Any
from typing import Protocol

logger = logging.getLogger(__name__)


class Store(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def increment(self, key: str, window: int, now: int | None = None) -> tuple[int, int]:
        """Count a hit inside a fixed window; returns ``(count, window_start)``."""
        ...


class FileStore:
    """A single JSON document on disk.

    ``increment`` is a plain read-modify-write without locking, so concurrent
    processes can undercount. Use it for single-process deployments only.
    ``ttl`` is ignored; records carry their own timestamps.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Store file %s is not valid JSON, starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data))

    def get(self, key: str) -> Any | None:
        return self._read().get(key)

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def increment(self, key: str, window: int, now: int | None = None) -> tuple[int, int]:
        now = int(time.time()) if now is None else now
        data = self._read()
        record = data.get(key)
        if not isinstance(record, dict) or now > record.get("time", 0) + window:
            record = {"time": now, "count": 0}
        record["count"] = int(record.get("count", 0)) + 1
        data[key] = record
        self._write(data)
        return record["count"], record["time"]


class MemoryStore:
    def __init__(self) -> None:
        self._data: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires = item
            if expires is not None and expires <= time.time():
                del self._data[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        with self._lock:
            self._data[key] = (value, time.time() + ttl if ttl else None)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def increment(self, key: str, window: int, now: int | None = None) -> tuple[int, int]:
        now = int(time.time()) if now is None else now
        with self._lock:
            item = self._data.get(key)
            record = item[0] if item else None
            if record is None or now > record["time"] + window:
                record = {"time": now, "count": 0}
            record["count"] += 1
            self._data[key] = (record, None)
            return record["count"], record["time"]


class RedisStore:
    """Redis-backed store; ``increment`` uses an atomic INCR."""

    def __init__(self, client: Any, prefix: str = "waypoint:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "waypoint:") -> "RedisStore":
        try:
            import redis
        except ImportError as exc:
            raise RuntimeError("redis package required for RedisStore, install waypoint[redis]") from exc
        return cls(redis.Redis.from_url(url), prefix)

    def get(self, key: str) -> Any | None:
        raw = self.client.get(self.prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.client.set(self.prefix + key, json.dumps(value), ex=ttl)

    def delete(self, key: str) -> None:
        self.client.delete(self.prefix + key)

    def increment(self, key: str, window: int, now: int | None = None) -> tuple[int, int]:
        now = int(time.time()) if now is None else now
        name = f"{self.prefix}count:{key}"
        pipe = self.client.pipeline()
        pipe.incr(name)
        pipe.expire(name, window, nx=True)
        pipe.ttl(name)
        count, _, remaining = pipe.execute()
        if remaining is None or remaining < 0:
            remaining = window
        return int(count), now - (window - int(remaining))


def build_store(driver: str, path: str | Path, redis_url: str, prefix: str) -> Store | None:
    if driver == "file":
        return FileStore(path)
    if driver == "redis":
        return RedisStore.from_url(redis_url, prefix)
    if driver == "memory":
        return MemoryStore()
    logger.warning("Unsupported store driver %r, feature disabled", driver)
    return None
