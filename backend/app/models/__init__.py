# Re-export all models for convenient imports
from app.models.user import User
from app.models.otp import OTPChallenge
from app.models.society import University, College, Society, Department, SocietyCategory
from app.models.invite import Invite, InviteKind, LINK_PLACEHOLDER_SUFFIX, is_link_placeholder, link_placeholder_email
from app.models.membership import Membership
from app.models.recruitment import (
    Application, ApplicationStatus, InterviewPanel, InterviewFeedback, Recommendation,
    LIVE_APPLICATION_STATUSES, APPLICATION_TRANSITIONS,
)
from app.models.platform_config import PlatformConfig
from app.models.audit_log import AuditLog

__all__ = [
    # People
    "User",
    "OTPChallenge",
    # Organisation
    "University",
    "College",
    "Society",
    "Department",
    "SocietyCategory",
    # Invites & memberships
    "Invite",
    "InviteKind",
    "LINK_PLACEHOLDER_SUFFIX",
    "is_link_placeholder",
    "link_placeholder_email",
    "Membership",
    # Recruitment
    "Application",
    "ApplicationStatus",
    "InterviewPanel",
    "InterviewFeedback",
    "Recommendation",
    "LIVE_APPLICATION_STATUSES",
    "APPLICATION_TRANSITIONS",
    # Platform
    "PlatformConfig",
    "AuditLog",
]
