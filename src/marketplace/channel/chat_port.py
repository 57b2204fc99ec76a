"""Chat channel port — abstract interface for chat-bot dispatch."""

from abc import ABC, abstractmethod


class ChatPort(ABC):
    @abstractmethod
    def send(self, chat_id: str, text: str, reply_markup: dict | None = None, target: str = "customer") -> dict:
        """Send a chat message through the bot for ``target``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
