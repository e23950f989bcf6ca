# backend/routes/orders.py
from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.common import ApiResponse
from schemas.order import OrderOut
from services import orders as order_service
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/order", tags=["Orders"])

# List the caller's orders, newest first
@router.get("", response_model=ApiResponse[List[OrderOut]])
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ApiResponse.ok(order_service.get_user_orders(db, current_user.id), "Orders fetched successfully")

# Get details of one of the caller's orders
@router.get("/{order_id}", response_model=ApiResponse[OrderOut])
def get_order_detail(
    order_id: int = Path(gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ApiResponse.ok(order_service.get_order(db, current_user.id, order_id), "Order details fetched successfully")
