# Pydantic schemas
from app.schemas.common import APIResponse, ok
from app.schemas.auth import (
    OTPSendRequest,
    OTPVerifyRequest,
    RegisterRequest,
    StudentRegisterRequest,
    LoginRequest,
    ChangePasswordRequest,
    InviteSignupRequest,
    UserResponse,
    AuthData,
    MeData,
)
from app.schemas.membership import MembershipResponse
from app.schemas.society import (
    SocietyCreate,
    SocietyResponse,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentSummary,
    MemberEntry,
)
from app.schemas.invite import (
    InviteCreate,
    InviteEmailRequest,
    HeadLinkInviteRequest,
    HeadEmailInviteRequest,
    InviteAcceptRequest,
    InviteResponse,
    InviteInfo,
)
from app.schemas.recruitment import (
    ApplicationCreate,
    ApplicationStatusUpdate,
    ApplicationResponse,
    PanelCreate,
    PanelResponse,
    FeedbackCreate,
    FeedbackResponse,
    ChooseFinalRequest,
    FinalChoiceResponse,
)
from app.schemas.admin import PlatformConfigResponse, PlatformConfigUpdate
