from app.services.audit_service import AuditService, audit_service
from app.services.email_service import EmailService, email_service
from app.services.eligibility_service import EligibilityService, eligibility_service
from app.services.otp_service import OTPService, otp_service
from app.services.membership_service import MembershipService, membership_service
from app.services.society_service import SocietyService, society_service
from app.services.invite_service import InviteService, invite_service
from app.services.recruitment_service import RecruitmentService, recruitment_service
from app.services.auth_service import AuthService, auth_service

__all__ = [
    # Side effects
    "AuditService",
    "audit_service",
    "EmailService",
    "email_service",
    # Registration
    "EligibilityService",
    "eligibility_service",
    "OTPService",
    "otp_service",
    "AuthService",
    "auth_service",
    # Ledgers
    "MembershipService",
    "membership_service",
    "SocietyService",
    "society_service",
    "InviteService",
    "invite_service",
    "RecruitmentService",
    "recruitment_service",
]
