from decimal import Decimal
from typing import Optional

from pydantic import Field

from schemas.common import CamelModel

# Shipping address captured at checkout and stored on the order
class ShippingAddress(CamelModel):
    line1: str = Field(min_length=1)
    line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)

# Input schema for POST /checkout
class CheckoutPayload(CamelModel):
    shipping_address: ShippingAddress

# Result of a checkout: payment handle for the client plus the frozen order total
class CheckoutOut(CamelModel):
    client_secret: Optional[str]
    order_id: int
    total_amount: Decimal
