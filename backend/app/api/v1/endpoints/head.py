"""Endpoints for department heads; the department is the one of the caller's active HEAD membership"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.societies import build_roster
from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.common import APIResponse, ok
from app.schemas.invite import InviteEmailRequest, InviteResponse
from app.services.invite_service import invite_service
from app.services.membership_service import membership_service

router = APIRouter()


@router.get("/members", response_model=APIResponse)
async def department_members(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    membership = await membership_service.require_head(db, current_user)
    memberships = await membership_service.list_by(db, department_id=membership.department_id)
    return ok(data=await build_roster(db, memberships))


@router.post("/member-invites/link", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_member_invite_link(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await invite_service.create_member_invite(db, current_user)
    return ok(
        "Member invite link created",
        InviteResponse.from_invite(invite, invite_service.build_invite_url(invite.token)),
    )


@router.post("/member-invites/email", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_member_invite_email(
    body: InviteEmailRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await invite_service.create_member_invite(db, current_user, email=body.email)
    return ok(
        "Member invite sent",
        InviteResponse.from_invite(invite, invite_service.build_invite_url(invite.token)),
    )
