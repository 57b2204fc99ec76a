"""Fake SMS adapter — keeps messages in memory instead of calling the SMS panel."""

from marketplace.channel.sms_port import SMSPort

DEFAULT_FAILURE = "SMS delivery failed"


class FakeSMSAdapter(SMSPort):
    def __init__(self):
        self.reset()

    def configure(self, should_succeed: bool = True, failure_reason: str = DEFAULT_FAILURE):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def block(self, *numbers):
        """Make sends to ``numbers`` fail as if the subscriber opted out."""
        self.blocked.update(str(number) for number in numbers)

    def send(self, to, body):
        self.calls += 1
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}
        if str(to) in self.blocked:
            return {"message_id": None, "status": "failed", "error": f"Recipient {to} is blocked"}

        message_id = f"sms-{self.calls:06d}"
        self.sent_messages.append({"message_id": message_id, "to": str(to), "body": body})
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_messages: list[dict] = []
        self.blocked: set[str] = set()
        self.should_succeed = True
        self.failure_reason = DEFAULT_FAILURE
        self.calls = 0
