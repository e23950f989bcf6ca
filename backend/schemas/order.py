from decimal import Decimal
from typing import List, Literal, Optional
from datetime import datetime

from schemas.common import CamelModel


# Product fields shown next to an order line
class OrderProductOut(CamelModel):
    id: int
    title: str
    slug: str

# Output schema for an individual order line item (snapshot price)
class OrderItemOut(CamelModel):
    id: int
    quantity: int
    unit_price: Decimal
    product: OrderProductOut

# Output schema representing the full order details
class OrderOut(CamelModel):
    id: int
    user_id: str
    status: str
    total_amount: Decimal
    shipping_address: dict
    created_at: Optional[datetime] = None
    payment_status: str
    items: List[OrderItemOut]

# Buyer summary shown on the admin order list
class OrderUserOut(CamelModel):
    id: str
    full_name: Optional[str] = None
    email: str

class AdminOrderOut(OrderOut):
    user: OrderUserOut

# Schema for updating order status
class OrderStatusPatch(CamelModel):
    status: Literal["pending", "processing", "shipped", "delivered", "cancelled"]

# Result of the orphaned-order sweep
class SweepOut(CamelModel):
    cancelled_order_ids: List[int]
