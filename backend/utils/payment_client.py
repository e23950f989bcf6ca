# backend/utils/payment_client.py
import httpx
import logging
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import urljoin
from config import settings

logger = logging.getLogger(__name__)

# Convert a 2-decimal amount into the processor's minor units (cents)
def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

class StripeClient:
    def __init__(self):
        # Initialize configuration
        self.api_url = settings.STRIPE_API_URL
        self.secret_key = settings.STRIPE_SECRET_KEY
        self.currency = settings.CURRENCY
        self.timeout = settings.PAYMENT_TIMEOUT_SECONDS

    async def create_payment_intent(self, amount: Decimal, metadata: dict, idempotency_key: str = None) -> dict:
        """Creates a payment intent and returns the processor's JSON object.

        The returned dict carries at least ``id`` (the payment reference used
        by webhooks) and ``client_secret`` (handed to the browser).
        """
        intent_url = urljoin(self.api_url, "/v1/payment_intents")
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        # Stripe expects form encoding with bracketed keys for nested fields
        form = {
            "amount": str(to_minor_units(amount)),
            "currency": self.currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(intent_url, data=form, headers=headers)
                response.raise_for_status()
                return response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                # Log detailed error information before re-raising
                try:
                    resp_text = e.response.text if getattr(e, "response", None) is not None else str(e)
                except Exception:
                    resp_text = str(e)
                logger.error("Stripe create payment intent error: %s", resp_text)
                raise

payment_client = StripeClient()

def get_payment_client() -> StripeClient:
    return payment_client
