"""Fake chat adapter — records sent messages for testing."""

from uuid import uuid4

from marketplace.channel.chat_port import ChatPort


class FakeChatAdapter(ChatPort):
    def __init__(self):
        self.sent_messages: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Chat delivery failed"
        self.calls = 0

    def configure(self, should_succeed: bool = True, failure_reason: str = "Chat delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, chat_id, text, reply_markup=None, target="customer"):
        self.calls += 1
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"chat-{uuid4().hex[:12]}"
        self.sent_messages.append(
            {
                "message_id": message_id,
                "chat_id": str(chat_id),
                "text": text,
                "reply_markup": reply_markup,
                "target": target,
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def messages_to(self, chat_id) -> list[dict]:
        return [m for m in self.sent_messages if m["chat_id"] == str(chat_id)]

    def reset(self):
        self.sent_messages.clear()
        self.should_succeed = True
        self.failure_reason = "Chat delivery failed"
        self.calls = 0
