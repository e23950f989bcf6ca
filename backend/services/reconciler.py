# backend/services/reconciler.py
"""Applies payment-processor events to payments, orders and stock.

Delivery is at-least-once, so every handler is safe to replay: the payment
row is claimed with a compare-and-set on its status, and only the call that
wins the claim touches the order, the stock and the cart. Stock is decremented
by the database itself (``stock = stock - n WHERE stock >= n``), never by
writing back a value read earlier.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from models.cart import Cart
from models.order import Order, OrderItem, OrderStatus
from models.payment import Payment, PaymentStatus
from models.product import Product
from utils.errors import ReconciliationRetry

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class Outcome(str, enum.Enum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    NO_ORDER = "no_order"
    STOCK_CONFLICT = "stock_conflict"


@dataclass
class ReconcileResult:
    outcome: Outcome
    event_type: str
    order_id: Optional[int] = None
    user_id: Optional[str] = None
    payment_reference: Optional[str] = None
    short_products: List[int] = field(default_factory=list)


def _order_id_from(metadata: dict) -> Optional[int]:
    # Metadata values always arrive as strings
    raw = metadata.get("orderId")
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def reconcile_event(db: Session, event: dict) -> ReconcileResult:
    """Dispatches one verified processor event.

    Raises ReconciliationRetry when the event refers to a payment that is not
    recorded yet; any other exception also means "retry later".
    """
    event_type = event.get("type", "")
    data = (event.get("data") or {}).get("object") or {}
    metadata = data.get("metadata") or {}
    reference = data.get("id")
    order_id = _order_id_from(metadata)
    user_id = metadata.get("userId") or None

    result = ReconcileResult(Outcome.IGNORED, event_type, order_id, user_id, reference)

    if order_id is None:
        logger.warning("Event %s (%s) carries no order id, acknowledging", event.get("id"), event_type)
        result.outcome = Outcome.NO_ORDER
        return result

    if event_type not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
        logger.info("Unhandled event type %s", event_type)
        return result

    order = db.query(Order).filter(Order.id == order_id).first()
    if order is None:
        logger.warning("Event %s references unknown order %s, acknowledging", event.get("id"), order_id)
        result.outcome = Outcome.NO_ORDER
        return result

    payment = _require_payment(db, reference)
    if payment.order_id != order.id:
        # Metadata and intent disagree; touching either order would be a guess
        logger.error("Event %s: payment %s belongs to order %s, not %s; acknowledging",
                     event.get("id"), reference, payment.order_id, order.id)
        result.outcome = Outcome.NO_ORDER
        return result

    if event_type == PAYMENT_SUCCEEDED:
        logger.info("Payment %s succeeded for order %s", reference, order_id)
        result.outcome, result.short_products = _apply_succeeded(db, order, payment, user_id)
    else:
        logger.info("Payment %s failed for order %s", reference, order_id)
        result.outcome = _apply_failed(db, reference)
    return result


# Compare-and-set the payment status; returns the number of rows claimed
def _claim_payment(db: Session, reference: str, from_statuses, to_status: PaymentStatus) -> int:
    return (
        db.query(Payment)
        .filter(Payment.provider_reference == reference, Payment.status.in_([s.value for s in from_statuses]))
        .update({Payment.status: to_status.value}, synchronize_session=False)
    )


def _require_payment(db: Session, reference: Optional[str]) -> Payment:
    payment = db.query(Payment).filter(Payment.provider_reference == reference).first() if reference else None
    if payment is None:
        # Webhook overtook checkout step 5, or the reference is foreign
        raise ReconciliationRetry(f"No payment recorded for reference {reference}")
    return payment


def _apply_succeeded(db: Session, order: Order, payment: Payment, user_id: Optional[str]):
    reference = payment.provider_reference
    if payment.status == PaymentStatus.SUCCEEDED.value:
        return Outcome.DUPLICATE, []

    items = db.query(OrderItem).filter(OrderItem.order_id == order.id).all()
    try:
        # a. payment: pending/failed -> succeeded, once
        if _claim_payment(db, reference, (PaymentStatus.PENDING, PaymentStatus.FAILED), PaymentStatus.SUCCEEDED) == 0:
            db.rollback()
            return Outcome.DUPLICATE, []

        # c. inventory: conditional decrement per line, evaluated by the database
        short = []
        for item in items:
            rows = (
                db.query(Product)
                .filter(Product.id == item.product_id, Product.stock >= item.quantity)
                .update({Product.stock: Product.stock - item.quantity}, synchronize_session=False)
            )
            if rows == 0:
                short.append(item.product_id)

        if short:
            db.rollback()
            return _record_stock_conflict(db, order, reference, short)

        # b. order: pending -> processing
        db.query(Order).filter(Order.id == order.id, Order.status == OrderStatus.PENDING.value).update(
            {Order.status: OrderStatus.PROCESSING.value}, synchronize_session=False
        )

        # d. the purchased cart is the user's active one
        if user_id:
            db.query(Cart).filter(Cart.user_id == user_id, Cart.is_active.is_(True)).update(
                {Cart.is_active: False}, synchronize_session=False
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    return Outcome.PROCESSED, []


def _record_stock_conflict(db: Session, order: Order, reference: str, short: List[int]):
    """Stock ran out between checkout and payment.

    The payment is still recorded as succeeded (the money was taken) but no
    stock is decremented and the order stays pending for an operator.
    """
    logger.error("Order %s paid but stock is short for products %s; order left pending", order.id, short)
    try:
        claimed = _claim_payment(db, reference, (PaymentStatus.PENDING, PaymentStatus.FAILED), PaymentStatus.SUCCEEDED)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    if claimed == 0:
        return Outcome.DUPLICATE, []
    return Outcome.STOCK_CONFLICT, short


def _apply_failed(db: Session, reference: str) -> Outcome:
    try:
        # A failure never overwrites a success; the order is left for follow-up
        claimed = _claim_payment(db, reference, (PaymentStatus.PENDING,), PaymentStatus.FAILED)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    return Outcome.PROCESSED if claimed else Outcome.DUPLICATE
