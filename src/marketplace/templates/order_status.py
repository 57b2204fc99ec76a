"""Status-change templates sent as the order moves through the kitchen and delivery."""

from marketplace.notification.record import NotificationChannel, NotificationEvent

_PROGRESS_TEXT = {
    "PREPARING": "is being prepared",
    "READY": "is ready and waiting for pickup",
    "COURIER_ASSIGNED": "has been assigned a courier",
    "OUT_FOR_DELIVERY": "is on its way",
}


class OrderAcceptedTemplate:
    event_name = NotificationEvent.ORDER_ACCEPTED.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} accepted",
            "body": f"{context.get('vendor_name', 'The restaurant')} accepted your order #{order_id}.",
        }


class OrderRejectedTemplate:
    event_name = NotificationEvent.ORDER_REJECTED.value
    default_channels = [NotificationChannel.CHAT.value, NotificationChannel.SMS.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        reason = f" Reason: {context['note']}" if context.get("note") else ""
        return {
            "subject": f"Order #{order_id} rejected",
            "body": f"Unfortunately the restaurant could not take order #{order_id}.{reason}",
        }


class OrderProgressTemplate:
    event_name = NotificationEvent.ORDER_PROGRESS.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        status = context.get("status", "")
        text = _PROGRESS_TEXT.get(status, "status updated")
        return {
            "subject": f"Order #{order_id} update",
            "body": f"Your order #{order_id} {text}.",
        }


class OrderDeliveredTemplate:
    event_name = NotificationEvent.ORDER_DELIVERED.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} delivered",
            "body": f"Order #{order_id} was delivered. Enjoy your meal!",
        }


class OrderCancelledTemplate:
    event_name = NotificationEvent.ORDER_CANCELLED.value
    default_channels = [NotificationChannel.CHAT.value, NotificationChannel.SMS.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        reason = f" Reason: {context['note']}" if context.get("note") else ""
        return {
            "subject": f"Order #{order_id} cancelled",
            "body": f"Order #{order_id} was cancelled.{reason}",
        }


class VendorOrderCancelledTemplate:
    event_name = NotificationEvent.VENDOR_ORDER_CANCELLED.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"Order #{order_id} cancelled",
            "body": (
                f"Order #{order_id} was cancelled by {context.get('actor_type', 'the customer')}. "
                "Please stop preparing it."
            ),
        }
