"""Endpoints for a society's core team; standing is read from the caller's active CORE membership"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.auth import UserResponse
from app.schemas.common import APIResponse, ok
from app.schemas.invite import HeadLinkInviteRequest, HeadEmailInviteRequest, InviteResponse
from app.schemas.society import SocietyResponse, DepartmentResponse, DepartmentSummary
from app.services.invite_service import invite_service
from app.services.membership_service import membership_service
from app.services.society_service import society_service

router = APIRouter()


@router.get("/my-society", response_model=APIResponse)
async def my_society(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    membership = await membership_service.require_core(db, current_user)
    society = await society_service.get_society(db, membership.society_id)
    return ok(data=SocietyResponse.model_validate(society))


@router.get("/departments", response_model=APIResponse)
async def my_departments(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Departments of the caller's society with member counts and current heads"""
    membership = await membership_service.require_core(db, current_user)
    listing = await society_service.list_departments(db, membership.society_id)
    return ok(data=[
        DepartmentSummary(
            department=DepartmentResponse.model_validate(item["department"]),
            member_count=item["member_count"],
            head=UserResponse.model_validate(item["head"]) if item["head"] else None,
        )
        for item in listing
    ])


@router.post("/head-invites/link", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_head_invite_link(
    body: HeadLinkInviteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await invite_service.create_head_invite(db, current_user, body.department_id)
    return ok(
        "Head invite link created",
        InviteResponse.from_invite(invite, invite_service.build_invite_url(invite.token)),
    )


@router.post("/head-invites/email", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_head_invite_email(
    body: HeadEmailInviteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    invite = await invite_service.create_head_invite(db, current_user, body.department_id, email=body.email)
    return ok(
        "Head invite sent",
        InviteResponse.from_invite(invite, invite_service.build_invite_url(invite.token)),
    )
