# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Identity provider token verification
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"

    # Payment processor
    STRIPE_API_URL: str = "https://api.stripe.com"
    STRIPE_SECRET_KEY: str
    STRIPE_WEBHOOK_SECRET: str
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    PAYMENT_TIMEOUT_SECONDS: float = 10.0
    CURRENCY: str = "usd"

    # Identity provider user lifecycle webhooks (svix format, "whsec_..." secret)
    IDENTITY_WEBHOOK_SECRET: str

    # Pending orders without a payment older than this are cancelled by the sweep
    ORPHAN_ORDER_TIMEOUT_MINUTES: int = 30

    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: str = "http://localhost:3000"

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
