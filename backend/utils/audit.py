# backend/utils/audit.py
import logging
from decimal import Decimal
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from models.log import Log

logger = logging.getLogger(__name__)

# Caller address as seen by the app (None under some test transports)
def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host

# The meta column is JSON; money and ids arrive as Decimal / int
def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value

def write_log(db: Session, *, user_id: Optional[str], action: str, resource: str, status: str = "SUCCESS",
              ip: Optional[str] = None, meta: Optional[dict] = None) -> Log:
    """Appends one row to the audit trail and commits it."""
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip,
                meta=_json_safe(meta or {}))
    try:
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.debug("audit %s %s %s user=%s", action, resource, status, user_id)
    return entry
