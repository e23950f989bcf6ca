from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A sellable catalogue entry. `stock` is the inventory ledger for the product:
# it is only ever decremented by the payment reconciler, through a conditional
# UPDATE executed by the database (see services/reconciler.py).
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)

    # Exact decimal, never float
    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    created_by = Column(String(255), ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category")
