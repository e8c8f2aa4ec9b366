from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Literal, Optional
from datetime import datetime

from app.core.roles import Role
from app.schemas.membership import MembershipResponse


class OTPSendRequest(BaseModel):
    email: EmailStr
    # admin / faculty emails are checked against the allow-lists before a code is sent
    account_type: Optional[Literal["admin", "faculty", "student"]] = None


class OTPVerifyRequest(BaseModel):
    email: EmailStr
    otp: str


class RegisterRequest(BaseModel):
    """Presence and matching are checked by the service so they surface as 400s"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
    otp: Optional[str] = None


class StudentRegisterRequest(RegisterRequest):
    role: Optional[str] = None  # STUDENT, CORE, HEAD or MEMBER; display hint only


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None


class InviteSignupRequest(BaseModel):
    token: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: Role
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class AuthData(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    membership: Optional[MembershipResponse] = None


class MeData(BaseModel):
    user: UserResponse
    membership: Optional[MembershipResponse] = None
