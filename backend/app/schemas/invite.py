from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime

from app.core.roles import Role
from app.models.invite import Invite, InviteKind


class InviteCreate(BaseModel):
    society_id: str
    role: Role
    email: Optional[EmailStr] = None  # omit for a shareable link invite
    department_id: Optional[str] = None
    expires_at: Optional[datetime] = None


class InviteEmailRequest(BaseModel):
    email: EmailStr


class HeadLinkInviteRequest(BaseModel):
    department_id: str


class HeadEmailInviteRequest(BaseModel):
    department_id: str
    email: EmailStr


class InviteAcceptRequest(BaseModel):
    token: str


class InviteResponse(BaseModel):
    id: str
    kind: InviteKind
    role: Role
    society_id: str
    department_id: Optional[str] = None
    email: Optional[str] = None
    is_link_invite: bool
    token: str
    invite_url: str
    expires_at: datetime

    @classmethod
    def from_invite(cls, invite: Invite, invite_url: str) -> "InviteResponse":
        return cls(
            id=str(invite.id),
            kind=invite.kind,
            role=invite.role,
            society_id=str(invite.society_id),
            department_id=str(invite.department_id) if invite.department_id else None,
            email=invite.target_email,
            is_link_invite=invite.is_link_invite,
            token=invite.token,
            invite_url=invite_url,
            expires_at=invite.expires_at,
        )


class InviteInfo(BaseModel):
    """What the accept page shows before the invite is redeemed"""
    role: Role
    society_name: Optional[str] = None
    department_name: Optional[str] = None
    email: Optional[str] = None
    is_link_invite: bool
    expires_at: datetime
