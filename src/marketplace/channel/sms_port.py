"""SMS channel port."""

from abc import ABC, abstractmethod


class SMSPort(ABC):
    @abstractmethod
    def send(self, to: str, body: str) -> dict:
        """Deliver ``body`` to the mobile number ``to``.

        Never raises for provider rejections: the outcome comes back as
        ``{"message_id", "status": "sent" | "failed", "error"}``.
        """
        ...
