"""Vendor chat actions — the buttons and replies of the vendor bot.

Inline buttons carry ``order:<order_id>:<action>``. Every action is checked
against the chat's vendor before it reaches the order lifecycle, which then
applies its own authority rules with a vendor actor.

Rejecting is a two-step conversation: the button opens a session and the
vendor's next text message becomes the rejection note.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.access import Actor
from marketplace.chatbot.session import SessionStore
from marketplace.config import get_settings
from marketplace.errors import MarketplaceError
from marketplace.order.lifecycle import OrderLifecycle
from marketplace.order.order import Order, OrderStatus
from marketplace.vendor.vendor import Vendor

logger = structlog.get_logger(__name__)

ACTION_TARGETS = {
    "accept": OrderStatus.VENDOR_ACCEPTED,
    "preparing": OrderStatus.PREPARING,
    "ready": OrderStatus.READY,
    "delivered": OrderStatus.DELIVERED,
}
REJECT = "reject"

NEW_ORDERS_BUTTON = "New orders"
RECENT_ORDERS_BUTTON = "My orders"

_REJECTION_SCOPE = "vendor-rejection"
_OPEN_STATUSES = {OrderStatus.PLACED.value, OrderStatus.VENDOR_ACCEPTED.value, OrderStatus.PREPARING.value}


@dataclass(frozen=True)
class ChatReply:
    """What the bot says back. ``answer`` is the short toast for a button press."""

    text: str | None = None
    answer: str | None = None
    order_id: str | None = None
    status: str | None = None
    reply_markup: dict | None = None


def parse_callback_data(data: str) -> tuple[str, str] | None:
    parts = (data or "").split(":")
    if len(parts) != 3 or parts[0] != "order" or not parts[1] or not parts[2]:
        return None
    return parts[1], parts[2]


def vendor_menu_keyboard() -> dict:
    return {
        "keyboard": [[{"text": NEW_ORDERS_BUTTON}], [{"text": RECENT_ORDERS_BUTTON}]],
        "resize_keyboard": True,
    }


class VendorChatActions:
    def __init__(self, lifecycle: OrderLifecycle | None = None, sessions: SessionStore | None = None):
        self.lifecycle = lifecycle or OrderLifecycle()
        self.sessions = sessions or SessionStore(ttl_seconds=get_settings().chat_session_ttl_seconds)

    @staticmethod
    def _vendor_for_chat(chat_id) -> Vendor | None:
        return current_domain.repository_for(Vendor).find_by_chat_id(chat_id)

    def _owned_order(self, chat_id, order_id) -> tuple[Vendor, Order] | None:
        vendor = self._vendor_for_chat(chat_id)
        if vendor is None:
            return None
        try:
            order = current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            return None
        if str(order.vendor_id) != str(vendor.id):
            return None
        return vendor, order

    def _apply(self, vendor: Vendor, order_id, target: OrderStatus, note=None) -> ChatReply:
        try:
            order = self.lifecycle.transition(order_id, target, note=note, actor=Actor.vendor(vendor.id))
        except (MarketplaceError, ValidationError) as exc:
            logger.warning(
                "Vendor chat action refused",
                vendor_id=str(vendor.id),
                order_id=str(order_id),
                target=target.value,
                error=str(exc),
            )
            return ChatReply(answer="Could not update the order", order_id=str(order_id))
        return ChatReply(
            answer="Updated",
            text=f"Order {str(order.id)[-6:]} is now {order.status}.",
            order_id=str(order.id),
            status=order.status,
        )

    def handle_callback(self, chat_id, data: str) -> ChatReply:
        """Handle an inline button press from a vendor chat."""
        parsed = parse_callback_data(data)
        if parsed is None:
            return ChatReply(text="Unknown action.")
        order_id, action = parsed

        owned = self._owned_order(chat_id, order_id)
        if owned is None:
            logger.warning("Vendor chat action denied", chat_id=str(chat_id), order_id=order_id, action=action)
            return ChatReply(answer="Access denied", order_id=order_id)
        vendor, _ = owned

        if action == REJECT:
            self.sessions.open(_REJECTION_SCOPE, chat_id, {"order_id": order_id})
            return ChatReply(
                answer="Type the reason for rejecting",
                text="Please write why you are rejecting this order.",
                order_id=order_id,
            )

        target = ACTION_TARGETS.get(action)
        if target is None:
            return ChatReply(text="Unknown action.", order_id=order_id)
        return self._apply(vendor, order_id, target)

    def handle_message(self, chat_id, text: str) -> ChatReply:
        """Handle a free-text message: a pending rejection reason or a menu button."""
        text = (text or "").strip()
        if not text or text.startswith("/"):
            return ChatReply()

        pending = self.sessions.pop(_REJECTION_SCOPE, chat_id)
        if pending is not None:
            owned = self._owned_order(chat_id, pending["order_id"])
            if owned is None:
                return ChatReply(answer="Access denied", order_id=pending["order_id"])
            reply = self._apply(owned[0], pending["order_id"], OrderStatus.VENDOR_REJECTED, note=text)
            if reply.status == OrderStatus.VENDOR_REJECTED.value:
                return ChatReply(
                    text="Order rejected and the reason was recorded.",
                    order_id=reply.order_id,
                    status=reply.status,
                )
            return reply

        vendor = self._vendor_for_chat(chat_id)
        if vendor is None:
            return ChatReply(text="Your account is not active. Please contact support.")

        if text == NEW_ORDERS_BUTTON:
            return self._list_orders(vendor, open_only=True)
        if text == RECENT_ORDERS_BUTTON:
            return self._list_orders(vendor, open_only=False)
        return ChatReply(text="Vendor menu:", reply_markup=vendor_menu_keyboard())

    @staticmethod
    def _list_orders(vendor: Vendor, open_only: bool, limit: int = 10) -> ChatReply:
        orders = current_domain.repository_for(Order).find_for_vendor(vendor.id)
        if open_only:
            orders = [order for order in orders if order.status in _OPEN_STATUSES]
        orders = sorted(orders, key=lambda order: order.created_at, reverse=True)[:limit]
        if not orders:
            return ChatReply(text="No new orders." if open_only else "No orders found.")
        lines = [f"#{str(order.id)[-6:]} | {order.status} | {order.total}" for order in orders]
        return ChatReply(text="\n".join(lines))
