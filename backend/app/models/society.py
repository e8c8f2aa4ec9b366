from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Enum as SQLEnum, UniqueConstraint, Index
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class SocietyCategory(str, enum.Enum):
    TECH = "TECH"
    NON_TECH = "NON_TECH"


class University(Base):
    __tablename__ = "universities"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True, nullable=True)
    admin_email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<University {self.name}>"


class College(Base):
    __tablename__ = "colleges"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    university_id = Column(GUID, ForeignKey("universities.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True, nullable=True)
    admin_email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<College {self.name}>"


class Society(Base):
    """A student society. Owns departments; has at most one faculty coordinator."""
    __tablename__ = "societies"
    __table_args__ = (
        Index('ix_societies_college_id', 'college_id'),
        Index('ix_societies_coordinator', 'faculty_coordinator_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(SQLEnum(SocietyCategory, name="society_category"), default=SocietyCategory.TECH, nullable=False)

    college_id = Column(GUID, ForeignKey("colleges.id", ondelete="SET NULL"), nullable=True)
    faculty_coordinator_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Display only; set when a PRESIDENT invite is redeemed
    president_name = Column(String(255), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Society {self.name}>"


class Department(Base):
    """
    A department inside one society.

    There is deliberately no head column: the head is whoever holds an active
    HEAD membership for the department.
    """
    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint('society_id', 'name', name='uq_departments_society_name'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    society_id = Column(GUID, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Department {self.name}>"
