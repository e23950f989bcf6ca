# utils/tokenJWT.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from utils.errors import Unauthorized, Forbidden

# auto_error is off so a missing header surfaces as our 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)

# Issue a token the way the identity provider does (local runs and tests)
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

# Decode a bearer token into the identity provider's user id
def decode_subject(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("Could not validate credentials")
    subject: Optional[str] = payload.get("sub")
    if not subject:
        raise Unauthorized("Could not validate credentials")
    return subject

# Retrieve the currently authenticated user based on the JWT token.
# The token is verified before any database access.
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    user_id = decode_subject(credentials.credentials)

    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if user is None:
        raise Unauthorized("Could not validate credentials")
    return user

# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(current_user: User = Depends(get_current_user)):
        if allowed_roles and (current_user.role or "").lower() not in allowed_roles:
            raise Forbidden("Admin access required" if "admin" in allowed_roles else "Forbidden")
        return current_user
    return _checker
