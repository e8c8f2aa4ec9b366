from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_admin
from app.schemas.admin import PlatformConfigResponse, PlatformConfigUpdate
from app.schemas.common import APIResponse, ok
from app.services.eligibility_service import eligibility_service

router = APIRouter()


@router.get("/platform-config", response_model=APIResponse)
async def get_platform_config(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    config = await eligibility_service.get_platform_config(db)
    return ok(data=PlatformConfigResponse.model_validate(config))


@router.put("/platform-config", response_model=APIResponse)
async def update_platform_config(
    body: PlatformConfigUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Replace the admin allow-list and/or faculty whitelist"""
    config = await eligibility_service.update_platform_config(
        db, current_user, admin_emails=body.admin_emails, faculty_whitelist=body.faculty_whitelist,
    )
    return ok("Platform config updated", PlatformConfigResponse.model_validate(config))
