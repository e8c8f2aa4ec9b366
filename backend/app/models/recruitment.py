from sqlalchemy import (
    Column, String, DateTime, Text, Integer, ForeignKey, JSON, Table,
    Enum as SQLEnum, UniqueConstraint, Index, text
)
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class ApplicationStatus(str, enum.Enum):
    APPLIED = "APPLIED"
    SHORTLISTED = "SHORTLISTED"
    SELECTED = "SELECTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


# An applicant may hold one application per society in these states
LIVE_APPLICATION_STATUSES = frozenset({ApplicationStatus.APPLIED, ApplicationStatus.SHORTLISTED})

# Forward-only lifecycle; REJECTED and WITHDRAWN are terminal
APPLICATION_TRANSITIONS = {
    ApplicationStatus.APPLIED: frozenset({
        ApplicationStatus.SHORTLISTED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.SHORTLISTED: frozenset({
        ApplicationStatus.SELECTED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.SELECTED: frozenset({
        ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
}


class Recommendation(str, enum.Enum):
    REJECT = "REJECT"
    HOLD = "HOLD"
    SELECT = "SELECT"


class Application(Base):
    """A student's application to join a society"""
    __tablename__ = "applications"
    __table_args__ = (
        Index(
            'uq_applications_live_per_society',
            'user_id', 'society_id',
            unique=True,
            sqlite_where=text("status IN ('APPLIED', 'SHORTLISTED')"),
            postgresql_where=text("status IN ('APPLIED', 'SHORTLISTED')"),
        ),
        Index('ix_applications_user_status', 'user_id', 'status'),
        Index('ix_applications_society_status', 'society_id', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    society_id = Column(GUID, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)

    status = Column(SQLEnum(ApplicationStatus, name="application_status"), default=ApplicationStatus.APPLIED, nullable=False)
    answers = Column(JSON, default=dict, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def can_transition_to(self, target: ApplicationStatus) -> bool:
        return target in APPLICATION_TRANSITIONS[self.status]

    def __repr__(self):
        return f"<Application {self.user_id} -> {self.society_id} {self.status.value}>"


interview_panel_applications = Table(
    "interview_panel_applications",
    Base.metadata,
    Column("panel_id", GUID, ForeignKey("interview_panels.id", ondelete="CASCADE"), primary_key=True),
    Column("application_id", GUID, ForeignKey("applications.id", ondelete="CASCADE"), primary_key=True),
)

interview_panel_interviewers = Table(
    "interview_panel_interviewers",
    Base.metadata,
    Column("panel_id", GUID, ForeignKey("interview_panels.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class InterviewPanel(Base):
    __tablename__ = "interview_panels"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    society_id = Column(GUID, ForeignKey("societies.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    applications = relationship("Application", secondary=interview_panel_applications, lazy="selectin")
    interviewers = relationship("User", secondary=interview_panel_interviewers, lazy="selectin")

    def __repr__(self):
        return f"<InterviewPanel {self.name}>"


class InterviewFeedback(Base):
    """One interviewer's verdict on one application, append-only per panel"""
    __tablename__ = "interview_feedback"
    __table_args__ = (
        UniqueConstraint('panel_id', 'interviewer_id', 'application_id', name='uq_feedback_panel_interviewer_application'),
        Index('ix_interview_feedback_application', 'application_id'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    panel_id = Column(GUID, ForeignKey("interview_panels.id", ondelete="CASCADE"), nullable=False)
    interviewer_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    application_id = Column(GUID, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)

    rating = Column(Integer, nullable=False)
    comments = Column(Text, nullable=True)
    recommendation = Column(SQLEnum(Recommendation, name="recommendation"), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<InterviewFeedback {self.interviewer_id} on {self.application_id}: {self.recommendation.value}>"
