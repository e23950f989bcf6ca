# backend/services/checkout.py
import logging
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from models.cart import Cart, CartItem
from models.order import Order, OrderItem, OrderStatus
from models.payment import Payment, PaymentStatus
from schemas.checkout import ShippingAddress, CheckoutOut
from schemas.common import money
from utils.errors import CartEmpty, OutOfStock, PaymentProcessorError, InternalError
from utils.payment_client import StripeClient

logger = logging.getLogger(__name__)

def _load_active_cart(db: Session, user_id: str):
    return (
        db.query(Cart)
        .options(joinedload(Cart.items).joinedload(CartItem.product))
        .filter(Cart.user_id == user_id, Cart.is_active.is_(True))
        .first()
    )

# Validate stock for every line and price the cart with live product prices
def _price_cart(cart: Cart) -> Decimal:
    total = Decimal("0.00")
    for item in cart.items:
        product = item.product
        if product.stock < item.quantity:
            raise OutOfStock(f"Out of stock: {product.title}", details={"productId": product.id})
        total += Decimal(product.price) * item.quantity
    return money(total)

def _create_order(db: Session, user_id: str, cart: Cart, total: Decimal, address: ShippingAddress) -> Order:
    """Inserts the order and its price-locked lines in one transaction."""
    try:
        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_amount=total,
            shipping_address=address.model_dump(by_alias=True, exclude_none=True),
        )
        db.add(order)
        db.add_all([
            OrderItem(
                order=order,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=money(item.product.price),
            )
            for item in cart.items
        ])
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    return order

async def create_checkout_session(db: Session, user_id: str, address: ShippingAddress,
                                  payment_client: StripeClient) -> CheckoutOut:
    """Turns the user's active cart into a pending order and a payment intent.

    Stock is validated but not decremented here; the payment webhook does
    that once the processor confirms the charge. The processor call happens
    between two transactions, so a failure there leaves a pending order
    without a payment (cleaned up by the orphaned-order sweep).
    """
    # 1. Load the active cart
    db.expire_all()
    cart = _load_active_cart(db, user_id)
    if not cart or not cart.items:
        raise CartEmpty()

    # 2. Stock check and total at current prices
    total = _price_cart(cart)

    # 3. Order + order items
    order = _create_order(db, user_id, cart, total, address)
    order_id = order.id
    logger.info("Order %s created for user %s, total %s", order.id, user_id, total)

    # 4. Payment intent, tagged so the webhook can find the order again
    try:
        intent = await payment_client.create_payment_intent(
            amount=total,
            metadata={"orderId": order.id, "userId": user_id},
            idempotency_key=f"order-{order.id}",
        )
    except Exception as e:
        logger.exception("Payment intent creation failed for order %s: %s", order.id, e)
        raise PaymentProcessorError(details={"orderId": order.id}) from e

    # 5. Pending payment record keyed by the processor reference
    try:
        payment = Payment(
            order_id=order.id,
            provider_reference=intent["id"],
            amount=total,
            status=PaymentStatus.PENDING.value,
            meta={"userId": user_id},
        )
        db.add(payment)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Failed to record payment %s for order %s", intent.get("id"), order_id)
        raise InternalError("Could not record the payment for this order", details={"orderId": order_id}) from e

    # 6. Handle for the client
    return CheckoutOut(client_secret=intent.get("client_secret"), order_id=order.id, total_amount=total)
