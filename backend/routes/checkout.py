# backend/routes/checkout.py
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.checkout import CheckoutPayload, CheckoutOut
from schemas.common import ApiResponse
from services.checkout import create_checkout_session
from utils.audit import client_ip, write_log
from utils.errors import ShopError
from utils.payment_client import StripeClient, get_payment_client
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/checkout", tags=["Checkout"])
logger = logging.getLogger(__name__)

# Create a pending order from the active cart and start the payment
@router.post("", response_model=ApiResponse[CheckoutOut])
async def checkout(
    payload: CheckoutPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    payment_client: StripeClient = Depends(get_payment_client),
):
    ip = client_ip(request)
    try:
        out = await create_checkout_session(db, current_user.id, payload.shipping_address, payment_client)
    except ShopError as e:
        write_log(db, user_id=current_user.id, action="CHECKOUT", resource="orders", status="FAIL",
                  ip=ip, meta={"code": e.code.value, "message": e.message})
        raise

    write_log(db, user_id=current_user.id, action="CHECKOUT", resource="orders", status="SUCCESS",
              ip=ip, meta={"order_id": out.order_id, "total": str(out.total_amount)})
    return ApiResponse.ok(out, "Checkout initiated successfully")
