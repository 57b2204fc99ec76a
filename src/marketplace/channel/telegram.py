"""Telegram Bot API chat adapter.

Customers, vendors and admins talk to separate bots, so the adapter keeps
one token per target and picks it per message.
"""

import requests
import structlog

from marketplace.channel.chat_port import ChatPort

logger = structlog.get_logger(__name__)

API_BASE = "https://api.telegram.org"


class TelegramChatAdapter(ChatPort):
    def __init__(self, tokens: dict[str, str], timeout: float = 10.0, session=None):
        self.tokens = {target: token for target, token in tokens.items() if token}
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, chat_id, text, reply_markup=None, target="customer"):
        token = self.tokens.get(target)
        if not token:
            return {"message_id": None, "status": "failed", "error": f"No bot configured for {target}"}

        body = {"chat_id": chat_id, "text": text}
        if reply_markup:
            body["reply_markup"] = reply_markup

        try:
            response = self.session.post(f"{API_BASE}/bot{token}/sendMessage", json=body, timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Telegram send failed", target=target, error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        if not data.get("ok"):
            return {"message_id": None, "status": "failed", "error": data.get("description", "Telegram error")}

        message_id = data.get("result", {}).get("message_id")
        return {"message_id": str(message_id) if message_id is not None else None, "status": "sent"}
