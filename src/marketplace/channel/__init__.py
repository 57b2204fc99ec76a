"""Channel adapter registry — pluggable notification dispatch channels.

Provides singleton access to channel adapters. Telegram and Melipayamak are
used when their credentials are configured; otherwise the fake adapters
record messages in memory.
"""

from marketplace.config import get_settings
from marketplace.notification.record import NotificationChannel

_channel_instances: dict[str, object] = {}


def _build(channel_type: str):
    settings = get_settings()
    if channel_type == NotificationChannel.CHAT.value:
        tokens = {
            "customer": settings.telegram_customer_bot_token,
            "vendor": settings.telegram_vendor_bot_token,
            "admin": settings.telegram_admin_bot_token,
        }
        if any(tokens.values()):
            from marketplace.channel.telegram import TelegramChatAdapter

            return TelegramChatAdapter(tokens)
        from marketplace.channel.fake_chat import FakeChatAdapter

        return FakeChatAdapter()
    elif channel_type == NotificationChannel.SMS.value:
        if settings.melipayamak_username and settings.melipayamak_password:
            from marketplace.channel.melipayamak import MelipayamakSMSAdapter

            return MelipayamakSMSAdapter(
                username=settings.melipayamak_username,
                password=settings.melipayamak_password,
                sender=settings.melipayamak_sender or "",
            )
        from marketplace.channel.fake_sms import FakeSMSAdapter

        return FakeSMSAdapter()
    raise ValueError(f"Unknown channel type: {channel_type}")


def get_channel(channel_type: str):
    """Return the configured adapter for "Chat" or "SMS" (singleton per channel type)."""
    if channel_type not in _channel_instances:
        _channel_instances[channel_type] = _build(channel_type)
    return _channel_instances[channel_type]


def set_channel(channel_type: str, adapter) -> None:
    _channel_instances[channel_type] = adapter


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
