"""Template registry — maps notification events to template classes.

Each template knows its default channels and renders a subject and body
from a plain context dict. Chat messages carry both, SMS only the body.
"""

from marketplace.notification.record import NotificationEvent
from marketplace.templates.order_placed import (
    AdminNewOrderTemplate,
    OrderPlacedTemplate,
    VendorNewOrderTemplate,
)
from marketplace.templates.order_status import (
    OrderAcceptedTemplate,
    OrderCancelledTemplate,
    OrderDeliveredTemplate,
    OrderProgressTemplate,
    OrderRejectedTemplate,
    VendorOrderCancelledTemplate,
)
from marketplace.templates.payment import (
    PaymentConfirmedTemplate,
    PaymentFailedTemplate,
    VendorPaymentConfirmedTemplate,
)

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationEvent.ORDER_PLACED.value: OrderPlacedTemplate,
    NotificationEvent.VENDOR_NEW_ORDER.value: VendorNewOrderTemplate,
    NotificationEvent.ADMIN_NEW_ORDER.value: AdminNewOrderTemplate,
    NotificationEvent.PAYMENT_CONFIRMED.value: PaymentConfirmedTemplate,
    NotificationEvent.VENDOR_PAYMENT_CONFIRMED.value: VendorPaymentConfirmedTemplate,
    NotificationEvent.PAYMENT_FAILED.value: PaymentFailedTemplate,
    NotificationEvent.ORDER_ACCEPTED.value: OrderAcceptedTemplate,
    NotificationEvent.ORDER_REJECTED.value: OrderRejectedTemplate,
    NotificationEvent.ORDER_PROGRESS.value: OrderProgressTemplate,
    NotificationEvent.ORDER_DELIVERED.value: OrderDeliveredTemplate,
    NotificationEvent.ORDER_CANCELLED.value: OrderCancelledTemplate,
    NotificationEvent.VENDOR_ORDER_CANCELLED.value: VendorOrderCancelledTemplate,
}


def get_template(event_name: str):
    """Look up a template class by notification event name."""
    template_cls = TEMPLATE_REGISTRY.get(event_name)
    if template_cls is None:
        raise ValueError(f"No template registered for notification event: {event_name}")
    return template_cls
