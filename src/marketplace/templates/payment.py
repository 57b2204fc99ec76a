"""Payment outcome templates."""

from marketplace.notification.record import NotificationChannel, NotificationEvent


class PaymentConfirmedTemplate:
    event_name = NotificationEvent.PAYMENT_CONFIRMED.value
    default_channels = [NotificationChannel.CHAT.value, NotificationChannel.SMS.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        ref = context.get("ref_number")
        ref_line = f"\nReference: {ref}" if ref else ""
        return {
            "subject": f"Payment received for order #{order_id}",
            "body": f"We received {int(context.get('amount') or 0):,} IRR for order #{order_id}.{ref_line}",
        }


class VendorPaymentConfirmedTemplate:
    event_name = NotificationEvent.VENDOR_PAYMENT_CONFIRMED.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": f"Order #{context.get('order_id', 'N/A')} is paid",
            "body": "The customer paid online. You can start preparing once you accept the order.",
        }


class PaymentFailedTemplate:
    event_name = NotificationEvent.PAYMENT_FAILED.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Payment failed for order #{order_id}",
            "body": (
                f"Your payment for order #{order_id} did not go through"
                f" ({context.get('reason') or 'declined'}). You can try again from the order page."
            ),
        }
