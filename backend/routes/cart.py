# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request, Path
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import client_ip, write_log
from models.users import User
from schemas.cart import CartAddItem, CartUpdateItem, CartOut
from schemas.common import ApiResponse
from services import cart as cart_service

router = APIRouter(prefix="/cart", tags=["Cart"])

def _audit(db: Session, request: Request, user: User, action: str, out: CartOut, **meta):
    meta.update({"cart_id": out.id, "cart_items": len(out.items), "total": out.total})
    write_log(db, user_id=user.id, action=action, resource="cart", status="SUCCESS",
              ip=client_ip(request), meta=meta)

# Active cart with live prices; an empty envelope when there is none yet
@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = cart_service.get_cart(db, current_user.id)
    if out is None:
        return ApiResponse.ok(None, "Cart not found")
    return ApiResponse.ok(out, "Cart fetched successfully")

@router.post("/items", response_model=ApiResponse[CartOut])
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = cart_service.add_item(db, current_user.id, payload.product_id, payload.quantity)
    _audit(db, request, current_user, "CART_ADD", out, product_id=payload.product_id, qty=payload.quantity)
    return ApiResponse.ok(out, "Item added to cart successfully")

@router.patch("/items/{item_id}", response_model=ApiResponse[CartOut])
def update_cart_item(
    payload: CartUpdateItem,
    request: Request,
    item_id: int = Path(gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = cart_service.update_item(db, current_user.id, item_id, payload.quantity)
    _audit(db, request, current_user, "CART_UPDATE", out, item_id=item_id, qty=payload.quantity)
    return ApiResponse.ok(out, "Cart updated successfully")

@router.delete("/items/{item_id}", response_model=ApiResponse[CartOut])
def delete_cart_item(
    request: Request,
    item_id: int = Path(gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    out = cart_service.remove_item(db, current_user.id, item_id)
    _audit(db, request, current_user, "CART_DELETE", out, item_id=item_id)
    return ApiResponse.ok(out, "Item removed from cart successfully")
