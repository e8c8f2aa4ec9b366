from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limiter import strict_rate_limit, auth_rate_limit
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
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
from app.schemas.common import APIResponse, ok
from app.schemas.invite import InviteInfo
from app.schemas.membership import MembershipResponse
from app.services.auth_service import auth_service
from app.services.invite_service import invite_service
from app.services.membership_service import membership_service
from app.services.otp_service import otp_service

router = APIRouter()


def _auth_data(user: User, token: str, membership=None) -> AuthData:
    return AuthData(
        access_token=token,
        user=UserResponse.model_validate(user),
        membership=MembershipResponse.model_validate(membership) if membership else None,
    )


# ==================== OTP ====================

@router.post("/otp/send", response_model=APIResponse)
@strict_rate_limit()
async def send_otp(
    request: Request,
    body: OTPSendRequest,
    db: AsyncSession = Depends(get_db)
):
    """Send a registration code (rate limited: 3/min, each call sends an email)"""
    challenge = await otp_service.request_challenge(db, body.email, body.account_type)
    return ok("OTP sent to your email", {"email": challenge.email, "expires_at": challenge.expires_at})


@router.post("/otp/verify", response_model=APIResponse)
async def verify_otp(
    body: OTPVerifyRequest,
    db: AsyncSession = Depends(get_db)
):
    await otp_service.verify_challenge(db, body.email, body.otp)
    return ok("OTP verified")


# ==================== Registration ====================

@router.post("/register/admin", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def register_admin(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    user, token = await auth_service.register_admin(db, **body.model_dump())
    return ok("Admin registered successfully", _auth_data(user, token))


@router.post("/register/faculty", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def register_faculty(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    user, token = await auth_service.register_faculty(db, **body.model_dump())
    return ok("Faculty registered successfully", _auth_data(user, token))


@router.post("/register/student", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def register_student(
    body: StudentRegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    user, token = await auth_service.register_student(db, **body.model_dump())
    return ok("Student registered successfully", _auth_data(user, token))


@router.post("/signup-with-invite", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def signup_with_invite(
    body: InviteSignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create an account and redeem an invite in one step"""
    user, membership, token = await auth_service.signup_with_invite(db, **body.model_dump())
    return ok("Account created and invite accepted", _auth_data(user, token, membership))


# ==================== Session ====================

@router.post("/login", response_model=APIResponse)
@auth_rate_limit()
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login (rate limited: 5/min)"""
    user, token = await auth_service.login(db, body.email, body.password, body.role)
    membership = await membership_service.get_active_membership(db, user.id)
    return ok("Login successful", _auth_data(user, token, membership))


@router.get("/me", response_model=APIResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    membership = await membership_service.get_active_membership(db, current_user.id)
    return ok(data=MeData(
        user=UserResponse.model_validate(current_user),
        membership=MembershipResponse.model_validate(membership) if membership else None,
    ))


@router.post("/change-password", response_model=APIResponse)
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await auth_service.change_password(
        db, current_user, body.old_password, body.new_password, body.confirm_password,
    )
    return ok("Password changed successfully")


# ==================== Invites (public) ====================

@router.get("/invite-info", response_model=APIResponse)
async def invite_info(
    token: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db)
):
    """Details shown on the accept page; no authentication required"""
    info = await invite_service.lookup(db, token)
    return ok(data=InviteInfo(**info))
