from marketplace.api.chatbot import chatbot_router
from marketplace.api.errors import register_exception_handlers
from marketplace.api.notifications import notification_router
from marketplace.api.onboarding import customer_router, vendor_router
from marketplace.api.orders import admin_order_router, order_router
from marketplace.api.payments import payment_router

routers = [
    order_router,
    admin_order_router,
    payment_router,
    notification_router,
    vendor_router,
    customer_router,
    chatbot_router,
]

__all__ = [
    "admin_order_router",
    "chatbot_router",
    "customer_router",
    "notification_router",
    "order_router",
    "payment_router",
    "register_exception_handlers",
    "routers",
    "vendor_router",
]
