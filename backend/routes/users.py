# backend/routes/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.common import ApiResponse
from schemas.user import UserProfileOut
from services.identity import get_profile
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/user", tags=["User"])

@router.get("/profile", response_model=ApiResponse[UserProfileOut])
def me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ApiResponse.ok(get_profile(db, current_user.id), "User profile fetched")
