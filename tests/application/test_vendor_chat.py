"""Application tests for the vendor bot: inline order actions and the rejection conversation."""

from protean import current_domain
from support import place_order, register_vendor

from marketplace.chatbot.session import SessionStore
from marketplace.chatbot.vendor_actions import (
    NEW_ORDERS_BUTTON,
    RECENT_ORDERS_BUTTON,
    VendorChatActions,
    parse_callback_data,
)
from marketplace.order.order import Order
from marketplace.throttling.store import InMemoryExpiringStore

VENDOR_CHAT = "vendor-chat-1"


def _status(order):
    return current_domain.repository_for(Order).get(order.id).status


class TestCallbackData:
    def test_parses_order_action(self):
        assert parse_callback_data("order:abc-123:accept") == ("abc-123", "accept")

    def test_rejects_other_shapes(self):
        assert parse_callback_data("menu:main") is None
        assert parse_callback_data("order::accept") is None
        assert parse_callback_data(None) is None


class TestButtonActions:
    def test_accept(self, vendor, customer):
        order = place_order(vendor, customer)

        reply = VendorChatActions().handle_callback(VENDOR_CHAT, f"order:{order.id}:accept")

        assert reply.answer == "Updated"
        assert reply.status == "VENDOR_ACCEPTED"
        assert _status(order) == "VENDOR_ACCEPTED"

    def test_history_records_vendor_actor(self, vendor, customer):
        order = place_order(vendor, customer)
        VendorChatActions().handle_callback(VENDOR_CHAT, f"order:{order.id}:accept")

        last = current_domain.repository_for(Order).get(order.id).status_history()[-1]
        assert last.actor_type == "vendor"

    def test_illegal_step_refused_without_change(self, vendor, customer):
        order = place_order(vendor, customer)

        reply = VendorChatActions().handle_callback(VENDOR_CHAT, f"order:{order.id}:ready")

        assert reply.answer == "Could not update the order"
        assert _status(order) == "PLACED"

    def test_other_vendors_chat_denied(self, vendor, customer):
        register_vendor(name="Pizza Place", telegram_chat_id="vendor-chat-2")
        order = place_order(vendor, customer)

        reply = VendorChatActions().handle_callback("vendor-chat-2", f"order:{order.id}:accept")

        assert reply.answer == "Access denied"
        assert _status(order) == "PLACED"

    def test_unknown_chat_denied(self, vendor, customer):
        order = place_order(vendor, customer)
        reply = VendorChatActions().handle_callback("stranger", f"order:{order.id}:accept")
        assert reply.answer == "Access denied"

    def test_malformed_data(self, vendor):
        assert VendorChatActions().handle_callback(VENDOR_CHAT, "garbage").text == "Unknown action."


class TestRejectionConversation:
    def test_reason_becomes_history_note(self, vendor, customer):
        order = place_order(vendor, customer)
        actions = VendorChatActions()

        prompt = actions.handle_callback(VENDOR_CHAT, f"order:{order.id}:reject")
        assert prompt.answer == "Type the reason for rejecting"
        assert _status(order) == "PLACED"

        reply = actions.handle_message(VENDOR_CHAT, "Out of charcoal")

        assert reply.text == "Order rejected and the reason was recorded."
        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.status == "VENDOR_REJECTED"
        assert stored.status_history()[-1].note == "Out of charcoal"

    def test_session_is_consumed(self, vendor, customer):
        order = place_order(vendor, customer)
        actions = VendorChatActions()
        actions.handle_callback(VENDOR_CHAT, f"order:{order.id}:reject")
        actions.handle_message(VENDOR_CHAT, "Closed today")

        assert actions.handle_message(VENDOR_CHAT, "hello").text == "Vendor menu:"

    def test_expired_session_falls_back_to_menu(self, vendor, customer):
        now = [0.0]
        sessions = SessionStore(store=InMemoryExpiringStore(clock=lambda: now[0]), ttl_seconds=60)
        actions = VendorChatActions(sessions=sessions)
        order = place_order(vendor, customer)
        actions.handle_callback(VENDOR_CHAT, f"order:{order.id}:reject")

        now[0] = 61.0
        reply = actions.handle_message(VENDOR_CHAT, "Too late")

        assert reply.text == "Vendor menu:"
        assert _status(order) == "PLACED"


class TestMenu:
    def test_commands_ignored(self, vendor):
        assert VendorChatActions().handle_message(VENDOR_CHAT, "/start").text is None

    def test_new_orders_listed(self, vendor, customer):
        order = place_order(vendor, customer)
        reply = VendorChatActions().handle_message(VENDOR_CHAT, NEW_ORDERS_BUTTON)
        assert reply.text == f"#{str(order.id)[-6:]} | PLACED | 500000"

    def test_no_orders(self, vendor):
        assert VendorChatActions().handle_message(VENDOR_CHAT, RECENT_ORDERS_BUTTON).text == "No orders found."

    def test_unknown_chat(self):
        reply = VendorChatActions().handle_message("stranger", "hi")
        assert reply.text == "Your account is not active. Please contact support."

    def test_other_text_shows_keyboard(self, vendor):
        reply = VendorChatActions().handle_message(VENDOR_CHAT, "hello")
        assert reply.reply_markup["keyboard"][0][0]["text"] == NEW_ORDERS_BUTTON
