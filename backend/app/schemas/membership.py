from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.roles import Role


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    society_id: str
    department_id: Optional[str] = None
    role: Role
    is_active: bool
    started_at: datetime
    ended_at: Optional[datetime] = None
