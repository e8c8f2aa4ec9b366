from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.common import APIResponse, ok
from app.schemas.invite import InviteCreate, InviteAcceptRequest, InviteResponse
from app.schemas.membership import MembershipResponse
from app.services.invite_service import invite_service

router = APIRouter()


@router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_invite(
    body: InviteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue an invite for any invite role.

    Who may issue what is decided from the caller's standing in the society:
    admins and the faculty coordinator issue anything, core members issue
    HEAD and MEMBER, heads issue MEMBER for their own department.
    """
    invite = await invite_service.issue(
        db,
        current_user,
        body.society_id,
        body.role,
        email=body.email,
        department_id=body.department_id,
        expires_at=body.expires_at,
    )
    return ok(
        "Invite created",
        InviteResponse.from_invite(invite, invite_service.build_invite_url(invite.token)),
    )


@router.post("/accept", response_model=APIResponse)
async def accept_invite(
    body: InviteAcceptRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    membership = await invite_service.redeem(db, body.token, current_user)
    return ok("Invite accepted", MembershipResponse.model_validate(membership))
