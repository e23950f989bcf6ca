# backend/services/orders.py
import logging
from datetime import datetime, timedelta, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from models.order import Order, OrderItem, OrderStatus
from models.payment import Payment, PaymentStatus
from schemas.common import money
from schemas.order import OrderOut, OrderItemOut, OrderProductOut, AdminOrderOut, OrderUserOut
from utils.errors import NotFound, Conflict

logger = logging.getLogger(__name__)

# Allowed admin moves; delivered and cancelled are terminal
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING.value: {OrderStatus.PROCESSING.value, OrderStatus.SHIPPED.value,
                                OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value},
    OrderStatus.PROCESSING.value: {OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value,
                                   OrderStatus.CANCELLED.value},
    OrderStatus.SHIPPED.value: {OrderStatus.DELIVERED.value},
    OrderStatus.DELIVERED.value: set(),
    OrderStatus.CANCELLED.value: set(),
}

def _with_relations(query):
    return query.options(
        joinedload(Order.items).joinedload(OrderItem.product),
        joinedload(Order.payments),
        joinedload(Order.user),
    )

# Map Order model to OrderOut; line prices are the frozen snapshots
def order_to_out(order: Order) -> OrderOut:
    items: List[OrderItemOut] = []
    for it in order.items:
        items.append(OrderItemOut(
            id=it.id,
            quantity=it.quantity,
            unit_price=money(it.unit_price),
            product=OrderProductOut(id=it.product.id, title=it.product.title, slug=it.product.slug),
        ))
    # Latest attempt first; no payment yet reads as pending
    payment_status = order.payments[0].status if order.payments else PaymentStatus.PENDING.value
    return OrderOut(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total_amount=money(order.total_amount),
        shipping_address=order.shipping_address or {},
        created_at=order.created_at,
        payment_status=payment_status,
        items=items,
    )

def get_user_orders(db: Session, user_id: str) -> List[OrderOut]:
    rows = (
        _with_relations(db.query(Order))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [order_to_out(o) for o in rows]

def get_order(db: Session, user_id: str, order_id: int) -> OrderOut:
    order = _with_relations(db.query(Order)).filter(Order.id == order_id, Order.user_id == user_id).first()
    if not order:
        raise NotFound("Order not found")
    return order_to_out(order)

def get_all_orders(db: Session) -> List[AdminOrderOut]:
    rows = _with_relations(db.query(Order)).order_by(Order.created_at.desc(), Order.id.desc()).all()
    result = []
    for o in rows:
        out = order_to_out(o)
        result.append(AdminOrderOut(
            **out.model_dump(),
            user=OrderUserOut(id=o.user.id, full_name=o.user.full_name, email=o.user.email),
        ))
    return result

def update_order_status(db: Session, order_id: int, new_status: str) -> OrderOut:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")

    old_status = order.status
    if new_status == old_status:
        return order_to_out(_with_relations(db.query(Order)).filter(Order.id == order_id).first())
    if new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
        raise Conflict(f"Cannot change status from {old_status} to {new_status}")

    try:
        order.status = new_status
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Order %s status %s -> %s", order_id, old_status, new_status)
    db.expire_all()
    return order_to_out(_with_relations(db.query(Order)).filter(Order.id == order_id).first())

def cancel_orphaned_orders(db: Session, older_than_minutes: int, now: datetime = None) -> List[int]:
    """Cancels pending orders that never got a payment record.

    These are left behind when the payment intent could not be created
    after the order was committed.
    """
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=older_than_minutes)
    # SQLite hands back naive timestamps; compare in the same form
    if db.get_bind().dialect.name == "sqlite":
        cutoff = cutoff.replace(tzinfo=None)

    has_payment = Order.id.in_(select(Payment.order_id))
    orphan_ids = [
        row.id for row in db.query(Order.id).filter(
            Order.status == OrderStatus.PENDING.value,
            Order.created_at < cutoff,
            ~has_payment,
        ).all()
    ]
    if not orphan_ids:
        return []

    try:
        # Re-check status and absence of a payment in the same statement
        db.query(Order).filter(
            Order.id.in_(orphan_ids),
            Order.status == OrderStatus.PENDING.value,
            ~has_payment,
        ).update({Order.status: OrderStatus.CANCELLED.value}, synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.warning("Cancelled %d orphaned orders: %s", len(orphan_ids), orphan_ids)
    return orphan_ids
