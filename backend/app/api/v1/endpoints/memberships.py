from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.common import APIResponse, ok
from app.schemas.membership import MembershipResponse
from app.services.membership_service import membership_service

router = APIRouter()


@router.get("/me", response_model=APIResponse)
async def my_membership(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's single active membership, or null"""
    membership = await membership_service.get_active_membership(db, current_user.id)
    if membership is None:
        return ok("No active membership")
    return ok(data=MembershipResponse.model_validate(membership))
