"""Per-chat conversation state with a TTL.

A vendor who taps "reject" is asked for a reason; the order awaiting that
reason lives here until the next message arrives or the session expires.
"""

from marketplace.throttling import get_store
from marketplace.throttling.store import ExpiringStore


class SessionStore:
    def __init__(self, store: ExpiringStore | None = None, ttl_seconds: int = 900, prefix: str = "chat-session"):
        self._store = store
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    @property
    def store(self) -> ExpiringStore:
        return self._store or get_store()

    def _key(self, scope: str, chat_id) -> str:
        return f"{self.prefix}:{scope}:{chat_id}"

    def open(self, scope: str, chat_id, state: dict) -> None:
        self.store.set_json(self._key(scope, chat_id), state, self.ttl_seconds)

    def get(self, scope: str, chat_id) -> dict | None:
        return self.store.get_json(self._key(scope, chat_id))

    def pop(self, scope: str, chat_id) -> dict | None:
        key = self._key(scope, chat_id)
        state = self.store.get_json(key)
        if state is not None:
            self.store.delete(key)
        return state

    def close(self, scope: str, chat_id) -> None:
        self.store.delete(self._key(scope, chat_id))
