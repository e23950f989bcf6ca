from sqlalchemy import Column, String, Boolean, DateTime, func
from database import Base

# Local projection of an identity-provider account.
# The primary key is the provider's user id, so tokens map directly onto rows.
class User(Base):
    __tablename__ = "users"

    id = Column(String(255), primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="user")  # "user" | "admin"
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Set when the identity provider reports the account as deleted
    deleted_at = Column(DateTime(timezone=True), nullable=True)
