from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models.recruitment import ApplicationStatus, Recommendation
from app.schemas.membership import MembershipResponse


# ==================== Applications ====================

class ApplicationCreate(BaseModel):
    society_id: str
    department_id: Optional[str] = None
    answers: Dict[str, Any] = Field(default_factory=dict)


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    society_id: str
    department_id: Optional[str] = None
    status: ApplicationStatus
    answers: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: Optional[datetime] = None


# ==================== Interviews ====================

class PanelCreate(BaseModel):
    society_id: str
    name: str
    department_id: Optional[str] = None
    application_ids: List[str] = Field(default_factory=list)
    interviewer_ids: List[str] = Field(default_factory=list)


class PanelResponse(BaseModel):
    id: str
    society_id: str
    department_id: Optional[str] = None
    name: str
    application_ids: List[str]
    interviewer_ids: List[str]
    created_at: datetime

    @classmethod
    def from_panel(cls, panel) -> "PanelResponse":
        return cls(
            id=str(panel.id),
            society_id=str(panel.society_id),
            department_id=str(panel.department_id) if panel.department_id else None,
            name=panel.name,
            application_ids=[str(a.id) for a in panel.applications],
            interviewer_ids=[str(u.id) for u in panel.interviewers],
            created_at=panel.created_at,
        )


class FeedbackCreate(BaseModel):
    """Range and enum checks happen in the service and surface as 400s"""
    panel_id: str
    application_id: str
    rating: int
    recommendation: str
    comments: Optional[str] = None


class FeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    panel_id: str
    interviewer_id: str
    application_id: str
    rating: int
    recommendation: Recommendation
    comments: Optional[str] = None
    created_at: datetime


# ==================== Final choice ====================

class ChooseFinalRequest(BaseModel):
    application_id: str


class FinalChoiceResponse(BaseModel):
    application: ApplicationResponse
    membership: MembershipResponse
    rejected_offers: int
