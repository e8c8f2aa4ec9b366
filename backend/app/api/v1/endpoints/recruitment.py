from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.recruitment import ApplicationStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.common import APIResponse, ok
from app.schemas.membership import MembershipResponse
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
from app.services.recruitment_service import recruitment_service

router = APIRouter()


# ==================== Applications ====================

@router.post("/applications", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def apply(
    body: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    application = await recruitment_service.apply(
        db, current_user, body.society_id, body.department_id, body.answers,
    )
    return ok("Application submitted", ApplicationResponse.model_validate(application))


@router.get("/applications/me", response_model=APIResponse)
async def my_applications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    applications = await recruitment_service.list_my_applications(db, current_user)
    return ok(data=[ApplicationResponse.model_validate(a) for a in applications])


@router.get("/societies/{society_id}/applications", response_model=APIResponse)
async def society_applications(
    society_id: str,
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    applications = await recruitment_service.list_applications(db, current_user, society_id, status_filter)
    return ok(data=[ApplicationResponse.model_validate(a) for a in applications])


@router.patch("/applications/{application_id}/status", response_model=APIResponse)
async def update_application_status(
    application_id: str,
    body: ApplicationStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    application = await recruitment_service.update_status(db, current_user, application_id, body.status)
    return ok("Application updated", ApplicationResponse.model_validate(application))


@router.post("/applications/{application_id}/withdraw", response_model=APIResponse)
async def withdraw_application(
    application_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    application = await recruitment_service.withdraw(db, current_user, application_id)
    return ok("Application withdrawn", ApplicationResponse.model_validate(application))


# ==================== Interviews ====================

@router.post("/panels", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_panel(
    body: PanelCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    panel = await recruitment_service.create_panel(
        db,
        current_user,
        body.society_id,
        body.name,
        department_id=body.department_id,
        application_ids=body.application_ids,
        interviewer_ids=body.interviewer_ids,
    )
    return ok("Interview panel created", PanelResponse.from_panel(panel))


@router.post("/feedback", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    feedback = await recruitment_service.submit_feedback(
        db,
        current_user,
        body.panel_id,
        body.application_id,
        body.rating,
        body.recommendation,
        comments=body.comments,
    )
    return ok("Feedback submitted", FeedbackResponse.model_validate(feedback))


# ==================== Final choice ====================

@router.post("/choose-final", response_model=APIResponse)
async def choose_final_society(
    body: ChooseFinalRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Accept one SELECTED offer; every other SELECTED offer is declined"""
    application, membership, rejected = await recruitment_service.choose_final_society(
        db, current_user, body.application_id,
    )
    return ok(
        "Final society chosen",
        FinalChoiceResponse(
            application=ApplicationResponse.model_validate(application),
            membership=MembershipResponse.model_validate(membership),
            rejected_offers=rejected,
        ),
    )
