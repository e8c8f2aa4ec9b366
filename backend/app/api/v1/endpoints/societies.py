from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.membership import Membership
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_faculty
from app.schemas.auth import UserResponse
from app.schemas.common import APIResponse, ok
from app.schemas.membership import MembershipResponse
from app.schemas.society import (
    SocietyCreate, SocietyResponse, DepartmentCreate, DepartmentResponse, MemberEntry,
)
from app.services.membership_service import membership_service
from app.services.society_service import society_service

router = APIRouter()


async def build_roster(db: AsyncSession, memberships: List[Membership]) -> List[MemberEntry]:
    """Attach the person to each membership in one query"""
    user_ids = {str(m.user_id) for m in memberships}
    users = {}
    if user_ids:
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        users = {str(u.id): u for u in result.scalars().all()}

    roster = []
    for membership in memberships:
        user = users.get(str(membership.user_id))
        roster.append(MemberEntry(
            membership=MembershipResponse.model_validate(membership),
            user=UserResponse.model_validate(user) if user else None,
        ))
    return roster


@router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_society(
    body: SocietyCreate,
    current_user: User = Depends(get_current_faculty),
    db: AsyncSession = Depends(get_db)
):
    society = await society_service.create_society(
        db, current_user, body.name, body.description, body.category, body.college_id,
    )
    return ok("Society created", SocietyResponse.model_validate(society))


@router.get("/{society_id}", response_model=APIResponse)
async def get_society(
    society_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    society = await society_service.get_society(db, society_id)
    return ok(data=SocietyResponse.model_validate(society))


@router.post("/{society_id}/departments", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    society_id: str,
    body: DepartmentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    department = await society_service.create_department(
        db, current_user, society_id, body.name, body.description,
    )
    return ok("Department created", DepartmentResponse.model_validate(department))


@router.get("/{society_id}/members", response_model=APIResponse)
async def list_members(
    society_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active roster, CORE first, then HEAD, then MEMBER"""
    await society_service.require_society_manager(db, current_user, society_id)
    memberships = await membership_service.list_by(db, society_id=society_id)
    return ok(data=await build_roster(db, memberships))
