"""Application settings.

Read from DISHDASH_* environment variables (and an optional ``.env`` file).
Protean's own configuration (database, broker, event store) stays with the
domain; this module only carries the marketplace's business and provider
settings.

Provides get_settings() / set_settings() / reset_settings() so tests can swap
in a Settings instance with different tariffs, secrets or retry limits.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DISHDASH_", env_file=".env", extra="ignore")

    environment: str = "development"

    # Delivery tariff (amounts in rials)
    internal_delivery_fee: int = Field(default=0, ge=0)
    courier_base_fee: int = Field(default=0, ge=0)
    courier_per_km_fee: int = Field(default=0, ge=0)
    courier_peak_multiplier: float = Field(default=1.0, gt=0)
    courier_max_km: float = Field(default=30.0, gt=0)

    # Payment gateway (Zibal protocol)
    gateway: str = "fake"
    zibal_merchant: str = "zibal"
    zibal_base_url: str = "https://gateway.zibal.ir"
    zibal_callback_url: str = "http://localhost:8000/payments/callback"
    zibal_timeout_seconds: float = 10.0
    callback_secret: str | None = None
    callback_max_skew_seconds: int = 300
    callback_replay_ttl_seconds: int = 600

    # Rate limits, requests per window
    payment_request_limit: int = 5
    payment_verify_limit: int = 6
    payment_callback_limit: int = 3
    rate_limit_window_seconds: int = 60

    # Notification delivery
    notification_concurrency: int = 5
    notification_max_attempts: int = 5
    notification_backoff_seconds: float = 3.0
    redis_url: str | None = None

    # Providers; the fake adapters are used when credentials are absent
    telegram_customer_bot_token: str | None = None
    telegram_vendor_bot_token: str | None = None
    telegram_admin_bot_token: str | None = None
    admin_chat_id: str | None = None
    melipayamak_username: str | None = None
    melipayamak_password: str | None = None
    melipayamak_sender: str | None = None

    # Vendor chat sessions (pending rejection reasons)
    chat_session_ttl_seconds: int = 900

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings()
    return _current_settings


def set_settings(settings: Settings) -> None:
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    global _current_settings
    _current_settings = None
