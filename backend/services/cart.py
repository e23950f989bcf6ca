# backend/services/cart.py
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.cart import Cart, CartItem
from models.product import Product
from schemas.cart import CartOut, CartItemOut, CartProductOut
from schemas.common import money
from utils.errors import NotFound, BadRequest, StockLimit, Forbidden, Conflict, ErrorCode

logger = logging.getLogger(__name__)

# Load the user's active cart together with its items and products
def _active_cart(db: Session, user_id: str) -> Optional[Cart]:
    return (
        db.query(Cart)
        .options(joinedload(Cart.items).joinedload(CartItem.product))
        .filter(Cart.user_id == user_id, Cart.is_active.is_(True))
        .first()
    )

# Find the active cart or create one. A concurrent first add from the same
# user trips the partial unique index; the loser re-reads the winner's cart.
def _get_or_create_active_cart(db: Session, user_id: str) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == user_id, Cart.is_active.is_(True)).first()
    if cart:
        return cart

    cart = Cart(user_id=user_id, is_active=True)
    db.add(cart)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        cart = db.query(Cart).filter(Cart.user_id == user_id, Cart.is_active.is_(True)).first()
        if cart is None:
            raise
        logger.info("Active cart for user %s created concurrently, reusing cart %s", user_id, cart.id)
    return cart

# Render a cart with live prices: subtotal = price x quantity per line
def cart_to_out(cart: Cart) -> CartOut:
    items_out = []
    total = Decimal("0.00")

    for it in cart.items:
        product = it.product
        subtotal = money(Decimal(product.price) * it.quantity)
        total += subtotal
        items_out.append(CartItemOut(
            id=it.id,
            quantity=it.quantity,
            subtotal=subtotal,
            product=CartProductOut(
                id=product.id,
                title=product.title,
                slug=product.slug,
                price=money(product.price),
                stock=product.stock,
            ),
        ))

    return CartOut(id=cart.id, user_id=cart.user_id, items=items_out, total=money(total))

def get_cart(db: Session, user_id: str) -> Optional[CartOut]:
    """Returns the active cart view, or None when the user has no cart yet."""
    # Drop identity-map state so the view reflects what is committed
    db.expire_all()
    cart = _active_cart(db, user_id)
    if not cart:
        return None
    return cart_to_out(cart)

def add_item(db: Session, user_id: str, product_id: int, quantity: int) -> CartOut:
    """Adds ``quantity`` of a product to the user's active cart.

    The cart is created on first use. Adding a product already in the cart
    increments that line; the resulting total quantity must fit the stock.
    """
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found", code=ErrorCode.PRODUCT_NOT_FOUND)
    if not product.is_active:
        raise BadRequest("Product is unavailable")
    if product.stock < quantity:
        raise StockLimit()

    try:
        cart = _get_or_create_active_cart(db, user_id)

        item = db.query(CartItem).filter(
            CartItem.cart_id == cart.id, CartItem.product_id == product_id
        ).first()

        if item:
            new_quantity = item.quantity + quantity
            # Check stock again for the total quantity
            if product.stock < new_quantity:
                raise StockLimit()
            item.quantity = new_quantity
        else:
            db.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))

        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_cart(db, user_id)

# Load a cart item and check the caller owns its cart
def _owned_item(db: Session, user_id: str, cart_item_id: int) -> CartItem:
    item = (
        db.query(CartItem)
        .options(joinedload(CartItem.cart), joinedload(CartItem.product))
        .filter(CartItem.id == cart_item_id)
        .first()
    )
    if not item:
        raise NotFound("Item not found")
    if item.cart.user_id != user_id:
        raise Forbidden("You do not own this cart item")
    if not item.cart.is_active:
        raise Conflict("Cart is no longer active")
    return item

def update_item(db: Session, user_id: str, cart_item_id: int, quantity: int) -> CartOut:
    item = _owned_item(db, user_id, cart_item_id)

    if quantity > item.product.stock:
        raise Conflict(f"Insufficient stock. Only {item.product.stock} available.")

    try:
        item.quantity = quantity
        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_cart(db, user_id)

def remove_item(db: Session, user_id: str, cart_item_id: int) -> CartOut:
    item = _owned_item(db, user_id, cart_item_id)

    try:
        db.delete(item)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_cart(db, user_id)

