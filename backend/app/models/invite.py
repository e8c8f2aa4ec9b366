from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum, Index
import enum

from app.core.database import Base
from app.core.roles import Role
from app.core.types import GUID, generate_uuid, utcnow


# Reserved domain for link invites. Older rows only carry this marker, so any
# email ending with it is read as a link invite.
LINK_PLACEHOLDER_SUFFIX = "@invite-link.placeholder"


def is_link_placeholder(email: str) -> bool:
    return bool(email) and email.strip().lower().endswith(LINK_PLACEHOLDER_SUFFIX)


def link_placeholder_email(token: str) -> str:
    return f"link-{token}{LINK_PLACEHOLDER_SUFFIX}"


class InviteKind(str, enum.Enum):
    LINK = "LINK"          # anyone holding the token may redeem
    TARGETED = "TARGETED"  # only the bound email may redeem


class Invite(Base):
    """Single-use, time-bound token granting a society role"""
    __tablename__ = "invites"
    __table_args__ = (
        Index('ix_invites_society_id', 'society_id'),
        Index('ix_invites_department_id', 'department_id'),
        Index('ix_invites_email', 'email'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    kind = Column(SQLEnum(InviteKind, name="invite_kind"), default=InviteKind.TARGETED, nullable=False)
    email = Column(String(255), nullable=True)

    society_id = Column(GUID, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="CASCADE"), nullable=True)
    role = Column(SQLEnum(Role, name="invite_role"), nullable=False)

    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)

    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    used_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def is_link_invite(self) -> bool:
        return self.kind == InviteKind.LINK or is_link_placeholder(self.email)

    @property
    def target_email(self):
        """Bound recipient, or None for link invites"""
        return None if self.is_link_invite else self.email

    def is_expired_at(self, now: datetime) -> bool:
        """Expiry is exclusive: redeeming at exactly expires_at fails"""
        return now >= self.expires_at

    def __repr__(self):
        return f"<Invite {self.role.value} {self.kind.value} society={self.society_id}>"
