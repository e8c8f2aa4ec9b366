"""
Custom Exceptions for SocietySync
=================================

Services raise these instead of HTTPException so the same rules can be
exercised from tests, scripts and the API. Each class carries the HTTP
status it maps to; `app.main` turns them into `error_response` payloads.

Usage:
    from app.core.exceptions import InviteExpiredError

    if invite.is_expired_at(now):
        raise InviteExpiredError()
"""

from typing import Optional, Any, Dict


class SocietySyncError(Exception):
    """Base exception for all SocietySync errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(SocietySyncError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidOTPError(SocietySyncError):
    """OTP code does not match the latest challenge"""

    status_code = 400

    def __init__(self, message: str = "Invalid OTP"):
        super().__init__(message, code="INVALID_OTP")


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(SocietySyncError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Email or password is wrong"""

    def __init__(self):
        super().__init__("Invalid email or password")
        self.code = "INVALID_CREDENTIALS"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid or expired"""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


class AuthorizationError(SocietySyncError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message, code="NOT_AUTHORIZED")


class EligibilityError(AuthorizationError):
    """Email is not on the platform allow-list for the requested role"""

    def __init__(self, role: str):
        super().__init__(f"This email is not approved for {role.lower()} registration.")
        self.code = "NOT_ELIGIBLE"
        self.details = {"role": role}


class EmailMismatchError(AuthorizationError):
    """Targeted invite redeemed by a different email"""

    def __init__(self):
        super().__init__("This invite was issued to a different email address.")
        self.code = "EMAIL_MISMATCH"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(SocietySyncError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class SocietyNotFoundError(ResourceNotFoundError):
    def __init__(self, society_id: str):
        super().__init__("Society", society_id)


class DepartmentNotFoundError(ResourceNotFoundError):
    def __init__(self, department_id: str):
        super().__init__("Department", department_id)


class OTPNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("OTP", message="OTP not found. Please request a new one.")


class InviteNotFoundError(ResourceNotFoundError):
    def __init__(self):
        super().__init__("Invite", message="Invite not found or already used.")


class ApplicationNotFoundError(ResourceNotFoundError):
    def __init__(self, application_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Application", application_id, message=message)


class PanelNotFoundError(ResourceNotFoundError):
    def __init__(self, panel_id: str):
        super().__init__("InterviewPanel", panel_id, message="Interview panel not found.")


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(SocietySyncError):
    """A uniqueness or state-machine rule would be violated"""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class UserAlreadyExistsError(ConflictError):
    def __init__(self):
        super().__init__("User already exists", code="USER_EXISTS")


class InviteAlreadyUsedError(ConflictError):
    def __init__(self):
        super().__init__("Invite is invalid or already used", code="INVITE_USED")


class DuplicateApplicationError(ConflictError):
    def __init__(self):
        super().__init__(
            "You already have an active application for this society.",
            code="DUPLICATE_APPLICATION"
        )


class DuplicateFeedbackError(ConflictError):
    def __init__(self):
        super().__init__(
            "Feedback already submitted for this application by this interviewer.",
            code="DUPLICATE_FEEDBACK"
        )


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move application from {current} to {target}",
            code="INVALID_TRANSITION",
            details={"from": current, "to": target}
        )


# ============================================
# Expiry Errors
# ============================================

class ExpiredError(SocietySyncError):
    """A time-bound token is past its validity window"""

    status_code = 400

    def __init__(self, message: str, code: str = "EXPIRED"):
        super().__init__(message, code=code)


class OTPExpiredError(ExpiredError):
    def __init__(self):
        super().__init__("OTP has expired", code="OTP_EXPIRED")


class InviteExpiredError(ExpiredError):
    def __init__(self):
        super().__init__("Invite has expired", code="INVITE_EXPIRED")


# ============================================
# Internal Errors
# ============================================

class MembershipTransitionError(SocietySyncError):
    """
    Creating the new membership failed after the previous one was deactivated.

    The transaction is rolled back before this is raised, so retrying the same
    transition is safe.
    """

    status_code = 500

    def __init__(self, user_id: str, reason: str = ""):
        super().__init__(
            "Membership transition failed; the previous membership was kept.",
            code="MEMBERSHIP_TRANSITION_FAILED",
            details={"user_id": user_id, "reason": reason}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: SocietySyncError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "message": error.message,
        "error": error.to_dict()
    }
