"""Melipayamak REST SMS adapter."""

import requests
import structlog

from marketplace.channel.sms_port import SMSPort

logger = structlog.get_logger(__name__)

SEND_URL = "https://rest.payamak-panel.com/api/SendSMS/SendSMS"


class MelipayamakSMSAdapter(SMSPort):
    def __init__(self, username: str, password: str, sender: str, timeout: float = 10.0, session=None):
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, to, body):
        form = {
            "username": self.username,
            "password": self.password,
            "to": to,
            "from": self.sender,
            "text": body,
            "isflash": "false",
        }
        try:
            response = self.session.post(SEND_URL, data=form, timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Melipayamak send failed", error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        # RetStatus 1 is the only success code; Value then holds the message id
        if data.get("RetStatus") != 1:
            return {"message_id": None, "status": "failed", "error": data.get("StrRetStatus") or "SMS rejected"}
        return {"message_id": str(data.get("Value")), "status": "sent"}
