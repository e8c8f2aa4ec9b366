from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum

from app.core.database import Base
from app.core.roles import Role
from app.core.types import GUID, generate_uuid, utcnow


class User(Base):
    """
    A registered person.

    `role` is the advisory hint chosen at registration. Current standing in a
    society lives in Membership and is always read from there.
    """
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lower-cased
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(Role, name="user_role"), default=Role.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User {self.email}>"
