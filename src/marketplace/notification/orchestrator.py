"""Notification orchestrator — who hears about which business moment, on which channel.

Looks up the customer and vendor, renders the template for the moment and
hands one message per channel to the dispatcher. Every public method is
best-effort: it logs and swallows its own failures because it always runs
after the business change has committed.
"""

import functools

import structlog
from protean.utils.globals import current_domain

from marketplace.config import get_settings
from marketplace.customer.customer import Customer
from marketplace.notification.dispatcher import NotificationDispatcher, get_dispatcher
from marketplace.notification.record import NotificationChannel, NotificationEvent, NotificationTarget
from marketplace.order.order import OrderStatus
from marketplace.templates import get_template
from marketplace.templates.order_placed import vendor_order_keyboard
from marketplace.vendor.vendor import Vendor

logger = structlog.get_logger(__name__)

_PROGRESS_STATUSES = {
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.COURIER_ASSIGNED.value,
    OrderStatus.OUT_FOR_DELIVERY.value,
}


def _best_effort(method):
    @functools.wraps(method)
    def wrapper(self, order, *args, **kwargs):
        try:
            return method(self, order, *args, **kwargs)
        except Exception as exc:
            logger.error(
                "Notification orchestration failed",
                moment=method.__name__,
                order_id=str(order.id),
                error=str(exc),
            )
            return None

    return wrapper


class NotificationOrchestrator:
    def __init__(self, dispatcher: NotificationDispatcher | None = None):
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher or get_dispatcher()

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _customer(order) -> Customer:
        return current_domain.repository_for(Customer).get(order.customer_id)

    @staticmethod
    def _vendor(order) -> Vendor:
        return current_domain.repository_for(Vendor).get(order.vendor_id)

    @staticmethod
    def _context(order, vendor=None, **extra) -> dict:
        return {
            "order_id": str(order.id),
            "status": order.status,
            "total": order.total,
            "subtotal": order.subtotal,
            "delivery_fee": order.delivery_fee,
            "delivery_type": order.delivery_type,
            "settlement_type": order.settlement_type,
            "out_of_zone": order.out_of_zone,
            "vendor_name": vendor.name if vendor else None,
            **extra,
        }

    @staticmethod
    def _correlation(order) -> dict:
        return {"order_id": str(order.id), "user_id": str(order.customer_id), "vendor_id": str(order.vendor_id)}

    def _send(self, event: NotificationEvent, order, context: dict, recipients: dict, target, reply_markup=None):
        """Render ``event`` and send it on each channel that has a recipient.

        ``recipients`` maps a channel value to the address on that channel.
        """
        template = get_template(event.value)
        rendered = template.render(context)
        chat_text = f"{rendered['subject']}\n{rendered['body']}"
        sent = []
        for channel in template.default_channels:
            recipient = recipients.get(channel)
            if not recipient:
                continue
            is_chat = channel == NotificationChannel.CHAT.value
            record_id = self.dispatcher.send(
                channel=channel,
                recipient=recipient,
                message=chat_text if is_chat else rendered["body"],
                correlation=self._correlation(order),
                event_name=event.value,
                target=target.value,
                reply_markup=reply_markup if is_chat else None,
            )
            if record_id:
                sent.append(record_id)
        return sent

    def _to_customer(self, event, order, context, customer=None):
        customer = customer or self._customer(order)
        recipients = {
            NotificationChannel.CHAT.value: customer.telegram_chat_id,
            NotificationChannel.SMS.value: customer.mobile,
        }
        return self._send(event, order, context, recipients, NotificationTarget.CUSTOMER)

    def _to_vendor(self, event, order, context, vendor, reply_markup=None):
        recipients = {NotificationChannel.CHAT.value: vendor.telegram_chat_id}
        return self._send(event, order, context, recipients, NotificationTarget.VENDOR, reply_markup)

    def _to_admin(self, event, order, context):
        recipients = {NotificationChannel.CHAT.value: get_settings().admin_chat_id}
        return self._send(event, order, context, recipients, NotificationTarget.ADMIN)

    # -------------------------------------------------------------------
    # Business moments
    # -------------------------------------------------------------------
    @_best_effort
    def on_order_placed(self, order):
        vendor = self._vendor(order)
        context = self._context(
            order,
            vendor,
            items=[{"title": item.title, "quantity": item.quantity} for item in order.items],
            address=order.address_snapshot.full_address or order.address_snapshot.title,
            customer_note=order.customer_note,
        )
        sent = self._to_customer(NotificationEvent.ORDER_PLACED, order, context)
        sent += self._to_vendor(
            NotificationEvent.VENDOR_NEW_ORDER,
            order,
            context,
            vendor,
            reply_markup=vendor_order_keyboard(str(order.id)),
        )
        sent += self._to_admin(NotificationEvent.ADMIN_NEW_ORDER, order, context)
        return sent

    @_best_effort
    def on_payment_success(self, order, payment=None):
        vendor = self._vendor(order)
        context = self._context(
            order,
            vendor,
            amount=payment.amount if payment else order.total,
            ref_number=payment.ref_number if payment else None,
        )
        sent = self._to_customer(NotificationEvent.PAYMENT_CONFIRMED, order, context)
        sent += self._to_vendor(NotificationEvent.VENDOR_PAYMENT_CONFIRMED, order, context, vendor)
        return sent

    @_best_effort
    def on_payment_failed(self, order, reason=None):
        context = self._context(order, reason=reason)
        return self._to_customer(NotificationEvent.PAYMENT_FAILED, order, context)

    @_best_effort
    def on_vendor_accepted(self, order, note=None, previous_status=None, actor_type=None):
        context = self._context(
            order, self._vendor(order), note=note, previous_status=previous_status, actor_type=actor_type
        )
        return self._to_customer(NotificationEvent.ORDER_ACCEPTED, order, context)

    @_best_effort
    def on_vendor_rejected(self, order, note=None, previous_status=None, actor_type=None):
        context = self._context(
            order, self._vendor(order), note=note, previous_status=previous_status, actor_type=actor_type
        )
        return self._to_customer(NotificationEvent.ORDER_REJECTED, order, context)

    @_best_effort
    def on_progress(self, order, note=None, previous_status=None, actor_type=None):
        context = self._context(
            order, self._vendor(order), note=note, previous_status=previous_status, actor_type=actor_type
        )
        return self._to_customer(NotificationEvent.ORDER_PROGRESS, order, context)

    @_best_effort
    def on_delivered(self, order, note=None, previous_status=None, actor_type=None):
        context = self._context(
            order, self._vendor(order), note=note, previous_status=previous_status, actor_type=actor_type
        )
        return self._to_customer(NotificationEvent.ORDER_DELIVERED, order, context)

    @_best_effort
    def on_cancelled(self, order, note=None, previous_status=None, actor_type=None):
        vendor = self._vendor(order)
        context = self._context(
            order, vendor, note=note, previous_status=previous_status, actor_type=actor_type
        )
        sent = self._to_customer(NotificationEvent.ORDER_CANCELLED, order, context)
        sent += self._to_vendor(NotificationEvent.VENDOR_ORDER_CANCELLED, order, context, vendor)
        return sent

    def on_status_changed(self, order, previous_status=None, note=None, actor_type=None):
        """Pick the moment for the order's new status. Statuses nobody hears about return []."""
        status = order.status
        if status == OrderStatus.VENDOR_ACCEPTED.value:
            moment = self.on_vendor_accepted
        elif status == OrderStatus.VENDOR_REJECTED.value:
            moment = self.on_vendor_rejected
        elif status in _PROGRESS_STATUSES:
            moment = self.on_progress
        elif status == OrderStatus.DELIVERED.value:
            moment = self.on_delivered
        elif status == OrderStatus.CANCELLED.value:
            moment = self.on_cancelled
        else:
            return []
        return moment(order, note=note, previous_status=previous_status, actor_type=actor_type)


_current_orchestrator: NotificationOrchestrator | None = None


def get_orchestrator() -> NotificationOrchestrator:
    global _current_orchestrator
    if _current_orchestrator is None:
        _current_orchestrator = NotificationOrchestrator()
    return _current_orchestrator


def reset_orchestrator() -> None:
    global _current_orchestrator
    _current_orchestrator = None
