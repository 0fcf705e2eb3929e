import time

from dataclasses import dataclass

from .storage import Store

WINDOW = 60
LIMITED_METHODS = frozenset({"GET", "POST", "PUT"})


@dataclass(slots=True, frozen=True)
class RateLimitRecord:
    time: int
    count: int
    limit: int

    @property
    def remaining(self) -> int:
        return self.limit - self.count

    @property
    def reset(self) -> int:
        return self.time + WINDOW

    @property
    def exceeded(self) -> bool:
        return self.remaining < 0

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }


class RateLimiter:
    def __init__(self, store: Store, limit: int):
        self.store = store
        self.limit = limit

    def applies_to(self, method: str) -> bool:
        return method in LIMITED_METHODS

    def hit(self, client_ip: str, now: int | None = None) -> RateLimitRecord:
        now = int(time.time()) if now is None else now
        count, started = self.store.increment(client_ip, WINDOW, now)
        return RateLimitRecord(time=started, count=count, limit=self.limit)
