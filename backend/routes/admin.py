# backend/routes/admin.py
from typing import List

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from schemas.common import ApiResponse
from schemas.order import AdminOrderOut, OrderOut, OrderStatusPatch, SweepOut
from services import orders as order_service
from utils.audit import client_ip, write_log
from utils.tokenJWT import role_required

router = APIRouter(prefix="/admin", tags=["Admin"])

# Every order with its buyer (Admin only)
@router.get("/orders", response_model=ApiResponse[List[AdminOrderOut]])
def get_all_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return ApiResponse.ok(order_service.get_all_orders(db), "All orders fetched successfully")

# Manually move an order forward (Admin only)
@router.patch("/orders/{order_id}", response_model=ApiResponse[OrderOut])
def update_order_status(
    payload: OrderStatusPatch,
    request: Request,
    order_id: int = Path(gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    out = order_service.update_order_status(db, order_id, payload.status)
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order_id, "new": payload.status})
    return ApiResponse.ok(out, "Order status updated successfully")

# Cancel pending orders whose payment intent was never recorded (Admin only)
@router.post("/orders/sweep", response_model=ApiResponse[SweepOut])
def sweep_orphaned_orders(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    cancelled = order_service.cancel_orphaned_orders(db, settings.ORPHAN_ORDER_TIMEOUT_MINUTES)
    write_log(db, user_id=current_user.id, action="ORDER_SWEEP", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"cancelled": cancelled})
    return ApiResponse.ok(SweepOut(cancelled_order_ids=cancelled), f"Cancelled {len(cancelled)} orphaned orders")
