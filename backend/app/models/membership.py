from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Enum as SQLEnum, Index, text

from app.core.database import Base
from app.core.roles import Role
from app.core.types import GUID, generate_uuid, utcnow


class Membership(Base):
    """
    Authoritative link between a person and a society (optionally a department).

    At most one active row per user; the partial unique index backs the
    transactional deactivate-then-create in MembershipService.
    """
    __tablename__ = "memberships"
    __table_args__ = (
        Index(
            'uq_memberships_one_active_per_user',
            'user_id',
            unique=True,
            sqlite_where=text('is_active = 1'),
            postgresql_where=text('is_active'),
        ),
        Index('ix_memberships_user_id', 'user_id'),
        Index('ix_memberships_society_active', 'society_id', 'is_active'),
        Index('ix_memberships_department_active', 'department_id', 'is_active'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    society_id = Column(GUID, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    role = Column(SQLEnum(Role, name="membership_role"), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def matches(self, society_id, department_id, role) -> bool:
        return (
            str(self.society_id) == str(society_id)
            and (str(self.department_id) if self.department_id else None) == (str(department_id) if department_id else None)
            and self.role == role
        )

    def __repr__(self):
        return f"<Membership {self.user_id} {self.role.value} active={self.is_active}>"
