"""Role definitions shared by models, services and auth dependencies"""
import enum


class Role(str, enum.Enum):
    """Platform roles. On a Person this is only the registration-time hint."""
    ADMIN = "ADMIN"
    FACULTY = "FACULTY"
    CORE = "CORE"
    HEAD = "HEAD"
    MEMBER = "MEMBER"
    PRESIDENT = "PRESIDENT"
    STUDENT = "STUDENT"


# Role slots a Membership row can hold
MEMBERSHIP_ROLES = frozenset({Role.CORE, Role.HEAD, Role.MEMBER})

# Roles an Invite may grant
INVITE_ROLES = frozenset({Role.CORE, Role.HEAD, Role.MEMBER, Role.PRESIDENT})

# Role hints a student may pick at self-registration
STUDENT_SIGNUP_ROLES = frozenset({Role.STUDENT, Role.CORE, Role.HEAD, Role.MEMBER})

# Roster ordering: leadership before rank-and-file
MEMBERSHIP_ROLE_RANK = {
    Role.CORE: 0,
    Role.HEAD: 1,
    Role.MEMBER: 2,
}
