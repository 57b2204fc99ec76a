"""Templates sent when an order is placed — to the customer, the vendor and the admin chat."""

from marketplace.notification.record import NotificationChannel, NotificationEvent


def _format_amount(value) -> str:
    return f"{int(value or 0):,} IRR"


def vendor_order_keyboard(order_id: str) -> dict:
    """Inline actions a vendor can take on an order from the chat bot."""
    prefix = f"order:{order_id}"
    return {
        "inline_keyboard": [
            [
                {"text": "Accept", "callback_data": f"{prefix}:accept"},
                {"text": "Reject", "callback_data": f"{prefix}:reject"},
            ],
            [
                {"text": "Preparing", "callback_data": f"{prefix}:preparing"},
                {"text": "Ready", "callback_data": f"{prefix}:ready"},
            ],
            [{"text": "Delivered", "callback_data": f"{prefix}:delivered"}],
        ]
    }


class OrderPlacedTemplate:
    event_name = NotificationEvent.ORDER_PLACED.value
    default_channels = [NotificationChannel.CHAT.value, NotificationChannel.SMS.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        if context.get("out_of_zone"):
            delivery_line = (
                f"Delivery by courier, {_format_amount(context.get('delivery_fee'))} paid to the courier on delivery."
            )
        else:
            delivery_line = "Delivered by the restaurant's own courier."
        return {
            "subject": f"Order #{order_id} received",
            "body": (
                f"Your order #{order_id} from {context.get('vendor_name', 'the restaurant')} was placed.\n"
                f"Total: {_format_amount(context.get('total'))}\n"
                f"{delivery_line}"
            ),
        }


class VendorNewOrderTemplate:
    event_name = NotificationEvent.VENDOR_NEW_ORDER.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        lines = "\n".join(f"- {item['title']} x {item['quantity']}" for item in context.get("items", []))
        note = f"\nNote: {context['customer_note']}" if context.get("customer_note") else ""
        return {
            "subject": f"New order #{context.get('order_id', 'N/A')}",
            "body": (
                f"{lines}\n"
                f"Subtotal: {_format_amount(context.get('subtotal'))}\n"
                f"Delivery: {context.get('delivery_type', '')}\n"
                f"Address: {context.get('address', '')}"
                f"{note}"
            ),
        }


class AdminNewOrderTemplate:
    event_name = NotificationEvent.ADMIN_NEW_ORDER.value
    default_channels = [NotificationChannel.CHAT.value]

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": f"Order #{context.get('order_id', 'N/A')} placed",
            "body": (
                f"Vendor: {context.get('vendor_name', '')}\n"
                f"Total: {_format_amount(context.get('total'))}\n"
                f"Delivery: {context.get('delivery_type', '')}, settlement {context.get('settlement_type', '')}"
            ),
        }
