"""Integration tests for the vendor bot webhook."""

from protean import current_domain
from support import place_order

from marketplace.order.order import Order

VENDOR_CHAT = "vendor-chat-1"


def _button(data, chat_id=VENDOR_CHAT):
    return {"callback_query": {"id": "cb-1", "data": data, "message": {"chat": {"id": chat_id}}}}


def _text(text, chat_id=VENDOR_CHAT):
    return {"message": {"chat": {"id": chat_id}, "text": text}}


class TestVendorWebhook:
    def test_accept_button(self, client, vendor, customer, chat):
        order = place_order(vendor, customer)

        response = client.post("/chatbot/vendor", json=_button(f"order:{order.id}:accept"))

        assert response.status_code == 200
        assert response.json()["status"] == "VENDOR_ACCEPTED"
        assert current_domain.repository_for(Order).get(order.id).status == "VENDOR_ACCEPTED"
        assert chat.messages_to(VENDOR_CHAT)[-1]["text"].endswith("is now VENDOR_ACCEPTED.")

    def test_reject_conversation(self, client, vendor, customer):
        order = place_order(vendor, customer)

        client.post("/chatbot/vendor", json=_button(f"order:{order.id}:reject"))
        response = client.post("/chatbot/vendor", json=_text("Kitchen closed"))

        assert response.json()["status"] == "VENDOR_REJECTED"
        assert current_domain.repository_for(Order).get(order.id).status_history()[-1].note == "Kitchen closed"

    def test_foreign_chat_denied(self, client, vendor, customer):
        order = place_order(vendor, customer)

        response = client.post("/chatbot/vendor", json=_button(f"order:{order.id}:accept", chat_id="intruder"))

        assert response.json()["answer"] == "Access denied"
        assert current_domain.repository_for(Order).get(order.id).status == "PLACED"

    def test_menu_reply_sent_to_chat(self, client, vendor, chat):
        client.post("/chatbot/vendor", json=_text("hi"))

        reply = chat.messages_to(VENDOR_CHAT)[-1]
        assert reply["text"] == "Vendor menu:"
        assert reply["target"] == "vendor"

    def test_update_without_chat_ignored(self, client):
        response = client.post("/chatbot/vendor", json={"edited_message": {}})
        assert response.status_code == 200
        assert response.json()["text"] is None
