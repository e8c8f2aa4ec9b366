from sqlalchemy import Column, DateTime, JSON

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class PlatformConfig(Base):
    """Singleton record holding the admin and faculty registration allow-lists"""
    __tablename__ = "platform_config"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    admin_emails = Column(JSON, default=list, nullable=False)
    faculty_whitelist = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PlatformConfig admins={len(self.admin_emails or [])} faculty={len(self.faculty_whitelist or [])}>"
