from datetime import datetime
from typing import Optional

from schemas.common import CamelModel

# Output schema for user profile details
class UserProfileOut(CamelModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: str
    is_verified: bool
    created_at: Optional[datetime] = None
