from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index, func
from database import Base

# Append-only audit trail: buyer actions, admin actions and applied webhooks.
# user_id is empty for processor events; the event ids live in meta.
class Log(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_resource_action", "resource", "action"),
    )

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(String(255), ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    resource = Column(String(50), nullable=False)
    # SUCCESS or FAIL
    status = Column(String(20), nullable=False, index=True)
    ip = Column(String(64), nullable=True)
    meta = Column(JSON, nullable=True)
