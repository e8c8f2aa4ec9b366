from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime


class PlatformConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    admin_emails: List[str]
    faculty_whitelist: List[str]
    updated_at: Optional[datetime] = None


class PlatformConfigUpdate(BaseModel):
    """Each list, when given, replaces the stored one wholesale"""
    admin_emails: Optional[List[str]] = None
    faculty_whitelist: Optional[List[str]] = None
