from decimal import Decimal
from typing import List

from pydantic import Field

from schemas.common import CamelModel

# Request schema for adding an item to the cart
class CartAddItem(CamelModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, ge=1)

# Request schema for updating cart item quantity
class CartUpdateItem(CamelModel):
    quantity: int = Field(ge=1)

# Product fields shown next to a cart line (live values)
class CartProductOut(CamelModel):
    id: int
    title: str
    slug: str
    price: Decimal
    stock: int

# Response schema for a single cart line item
class CartItemOut(CamelModel):
    id: int
    quantity: int
    subtotal: Decimal
    product: CartProductOut

# Response schema for the entire cart summary
class CartOut(CamelModel):
    id: int
    user_id: str
    items: List[CartItemOut]
    total: Decimal
