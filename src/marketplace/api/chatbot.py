"""Webhook for the vendor Telegram bot."""

import structlog
from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from marketplace.api.schemas import ChatReplyResponse
from marketplace.channel import get_channel
from marketplace.chatbot.vendor_actions import ChatReply, VendorChatActions
from marketplace.notification.record import NotificationChannel, NotificationTarget

logger = structlog.get_logger(__name__)

chatbot_router = APIRouter(prefix="/chatbot", tags=["chatbot"])


def _reply(chat_id, reply: ChatReply) -> ChatReplyResponse:
    if reply.text and chat_id is not None:
        result = get_channel(NotificationChannel.CHAT.value).send(
            str(chat_id), reply.text, reply_markup=reply.reply_markup, target=NotificationTarget.VENDOR.value
        )
        if result.get("status") != "sent":
            logger.warning("Vendor bot reply failed", chat_id=str(chat_id), error=result.get("error"))
    return ChatReplyResponse(text=reply.text, answer=reply.answer, order_id=reply.order_id, status=reply.status)


@chatbot_router.post("/vendor", response_model=ChatReplyResponse)
async def vendor_update(request: Request) -> ChatReplyResponse:
    """Handle one Telegram update: an inline button press or a text message."""
    return await run_in_threadpool(_handle_update, await request.json())


def _handle_update(update: dict) -> ChatReplyResponse:
    actions = VendorChatActions()

    query = update.get("callback_query")
    if query:
        chat_id = ((query.get("message") or {}).get("chat") or {}).get("id")
        return _reply(chat_id, actions.handle_callback(chat_id, query.get("data", "")))

    message = update.get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    if chat_id is None:
        return ChatReplyResponse()
    return _reply(chat_id, actions.handle_message(chat_id, message.get("text", "")))
