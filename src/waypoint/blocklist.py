import time

from typing import Any

from .storage import Store


class IPBlocklist:
    """Blocked client IPs; presence of the key is what counts."""

    def __init__(self, store: Store):
        self.store = store

    def is_blocked(self, client_ip: str) -> bool:
        return bool(client_ip) and self.store.get(client_ip) is not None

    def block(self, client_ip: str, reason: str = "", **meta: Any) -> None:
        self.store.put(client_ip, {"reason": reason, "blocked_at": int(time.time()), **meta})

    def unblock(self, client_ip: str) -> None:
        self.store.delete(client_ip)
