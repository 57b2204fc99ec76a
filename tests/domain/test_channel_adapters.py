"""Tests for the Telegram and Melipayamak HTTP adapters with a mocked session."""

from unittest.mock import MagicMock

import requests
from marketplace.channel.melipayamak import SEND_URL, MelipayamakSMSAdapter
from marketplace.channel.telegram import TelegramChatAdapter


def _session(payload=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value.json.return_value = payload
    return session


# ---------------------------------------------------------------
# Telegram
# ---------------------------------------------------------------
class TestTelegramChatAdapter:
    def test_send_posts_to_the_target_bot(self):
        session = _session({"ok": True, "result": {"message_id": 42}})
        adapter = TelegramChatAdapter({"customer": "cust-token", "vendor": "vend-token"}, session=session)

        result = adapter.send("1001", "Hello", target="vendor")

        assert result == {"message_id": "42", "status": "sent"}
        url = session.post.call_args.args[0]
        assert url == "https://api.telegram.org/botvend-token/sendMessage"
        assert session.post.call_args.kwargs["json"] == {"chat_id": "1001", "text": "Hello"}

    def test_reply_markup_is_forwarded(self):
        session = _session({"ok": True, "result": {"message_id": 1}})
        adapter = TelegramChatAdapter({"vendor": "t"}, session=session)
        markup = {"inline_keyboard": [[{"text": "Accept", "callback_data": "order:1:accept"}]]}

        adapter.send("1001", "New order", reply_markup=markup, target="vendor")

        assert session.post.call_args.kwargs["json"]["reply_markup"] == markup

    def test_unconfigured_target_fails_without_calling_telegram(self):
        session = _session({"ok": True})
        adapter = TelegramChatAdapter({"customer": "t", "admin": ""}, session=session)

        result = adapter.send("1001", "Hello", target="admin")

        assert result["status"] == "failed"
        assert "admin" in result["error"]
        session.post.assert_not_called()

    def test_api_error_is_reported(self):
        session = _session({"ok": False, "description": "Forbidden: bot was blocked by the user"})
        adapter = TelegramChatAdapter({"customer": "t"}, session=session)

        result = adapter.send("1001", "Hello")

        assert result == {
            "message_id": None,
            "status": "failed",
            "error": "Forbidden: bot was blocked by the user",
        }

    def test_network_error_is_reported(self):
        session = _session(error=requests.ConnectionError("connection refused"))
        adapter = TelegramChatAdapter({"customer": "t"}, session=session)

        result = adapter.send("1001", "Hello")

        assert result["status"] == "failed"
        assert "connection refused" in result["error"]


# ---------------------------------------------------------------
# Melipayamak
# ---------------------------------------------------------------
class TestMelipayamakSMSAdapter:
    def _adapter(self, session):
        return MelipayamakSMSAdapter("user", "secret", "3000123", session=session)

    def test_send_posts_the_form(self):
        session = _session({"RetStatus": 1, "Value": "9876", "StrRetStatus": "Ok"})

        result = self._adapter(session).send("09120000000", "Your order was placed")

        assert result == {"message_id": "9876", "status": "sent"}
        assert session.post.call_args.args[0] == SEND_URL
        form = session.post.call_args.kwargs["data"]
        assert form["to"] == "09120000000"
        assert form["from"] == "3000123"
        assert form["text"] == "Your order was placed"

    def test_non_success_status_fails(self):
        session = _session({"RetStatus": 35, "StrRetStatus": "InvalidData"})

        result = self._adapter(session).send("09120000000", "Hi")

        assert result == {"message_id": None, "status": "failed", "error": "InvalidData"}

    def test_garbled_response_fails(self):
        session = MagicMock()
        session.post.return_value.json.side_effect = ValueError("Expecting value")

        result = self._adapter(session).send("09120000000", "Hi")

        assert result["status"] == "failed"
        assert "Expecting value" in result["error"]
