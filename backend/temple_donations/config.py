"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.
"""
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "Temple Donations API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ORGANIZATION_NAME: str = "ISKCON Shri Gauranga Dham"

    # --- Database ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'donations.db'}"

    # --- Payment Gateway (Razorpay) ---
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_API_BASE: str = "https://api.razorpay.com/v1"
    PAYMENT_CURRENCY: str = "INR"

    # --- Messaging (Twilio WhatsApp) ---
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_WHATSAPP_NUMBER: str = "whatsapp:+14155238886"
    TWILIO_API_BASE: str = "https://api.twilio.com/2010-04-01"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # --- Receipts ---
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    RECEIPTS_DIR: str = str(BASE_DIR / "receipts")
    RECEIPT_RETENTION_HOURS: int = 24
    RECEIPT_SWEEP_ENABLED: bool = False
    RECEIPT_SWEEP_INTERVAL_MINUTES: int = 60

    # --- Inbound webhook ---
    INBOUND_SOFT_DEADLINE_SECONDS: float = 12.0

    # --- Security ---
    CORS_ORIGINS: list[str] = ["*"]

    # --- Logging ---
    LOG_DIR: str = str(BASE_DIR / "logs")
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def gateway_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    @property
    def messaging_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
