from sqlalchemy import Column, String, DateTime, ForeignKey, JSON

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class AuditLog(Base):
    """Audit trail entry written after every state-changing operation"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    actor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    actor_role = Column(String(20), nullable=True)

    # Action details
    action = Column(String(100), nullable=False, index=True)  # e.g. 'INVITE_ACCEPTED'
    target_model = Column(String(50), nullable=True)  # e.g. 'Invite', 'Membership'
    target_id = Column(String(36), nullable=True)

    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.actor_id}>"
