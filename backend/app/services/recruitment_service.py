"""
Recruitment pipeline.

Applications move forward only: APPLIED -> SHORTLISTED -> SELECTED, with
REJECTED and WITHDRAWN reachable from any open state. A student may be
SELECTED by several societies at once; choosing one of them rejects the
other offers and turns the chosen one into a MEMBER membership.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ApplicationNotFoundError, AuthorizationError, DuplicateApplicationError, DuplicateFeedbackError,
    InvalidTransitionError, PanelNotFoundError, ValidationError,
)
from app.core.logging_config import logger
from app.core.roles import Role
from app.core.types import utcnow
from app.models.membership import Membership
from app.models.recruitment import (
    Application, ApplicationStatus, InterviewPanel, InterviewFeedback, Recommendation,
    LIVE_APPLICATION_STATUSES,
)
from app.models.user import User
from app.services.audit_service import audit_service
from app.services.membership_service import membership_service
from app.services.society_service import society_service


class RecruitmentService:

    async def get_application(self, db: AsyncSession, application_id: str) -> Application:
        application = await db.get(Application, str(application_id))
        if application is None:
            raise ApplicationNotFoundError(str(application_id))
        return application

    # ==================== Applications ====================

    async def apply(
        self,
        db: AsyncSession,
        person: User,
        society_id: str,
        department_id: Optional[str] = None,
        answers: Optional[Dict[str, Any]] = None,
    ) -> Application:
        society = await society_service.get_society(db, society_id)
        if not society.is_active:
            raise ValidationError("This society is not accepting applications.", field="society_id")
        if department_id:
            await society_service.get_department(db, department_id, society.id)

        existing = await db.execute(
            select(Application.id).where(
                Application.user_id == str(person.id),
                Application.society_id == str(society.id),
                Application.status.in_(LIVE_APPLICATION_STATUSES),
            )
        )
        if existing.first() is not None:
            raise DuplicateApplicationError()

        application = Application(
            user_id=str(person.id),
            society_id=str(society.id),
            department_id=str(department_id) if department_id else None,
            status=ApplicationStatus.APPLIED,
            answers=answers or {},
        )
        db.add(application)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race with a concurrent submission
            await db.rollback()
            raise DuplicateApplicationError()

        logger.info(f"[Recruitment] {person.email} applied to society {society.id}")
        await audit_service.record(
            db, "APPLICATION_CREATED", actor=person, target_model="Application", target_id=application.id,
            metadata={"society_id": str(society.id), "department_id": application.department_id},
        )
        return application

    async def update_status(
        self,
        db: AsyncSession,
        actor: User,
        application_id: str,
        new_status: ApplicationStatus,
    ) -> Application:
        """Staff move an application along the lifecycle"""
        new_status = ApplicationStatus(new_status)
        if new_status == ApplicationStatus.WITHDRAWN:
            raise ValidationError("Only the applicant can withdraw an application.", field="status")

        application = await self.get_application(db, application_id)
        await society_service.require_society_manager(db, actor, application.society_id)

        if not application.can_transition_to(new_status):
            raise InvalidTransitionError(application.status.value, new_status.value)

        previous = application.status
        application.status = new_status
        await db.commit()

        logger.info(f"[Recruitment] Application {application.id}: {previous.value} -> {new_status.value}")
        await audit_service.record(
            db, "APPLICATION_STATUS_UPDATED", actor=actor, target_model="Application", target_id=application.id,
            metadata={"from": previous.value, "to": new_status.value},
        )
        return application

    async def withdraw(self, db: AsyncSession, person: User, application_id: str) -> Application:
        application = await self.get_application(db, application_id)
        if str(application.user_id) != str(person.id):
            raise ApplicationNotFoundError(str(application_id))
        if not application.can_transition_to(ApplicationStatus.WITHDRAWN):
            raise InvalidTransitionError(application.status.value, ApplicationStatus.WITHDRAWN.value)

        application.status = ApplicationStatus.WITHDRAWN
        await db.commit()

        await audit_service.record(
            db, "APPLICATION_WITHDRAWN", actor=person, target_model="Application", target_id=application.id,
        )
        return application

    async def list_applications(
        self,
        db: AsyncSession,
        actor: User,
        society_id: str,
        status: Optional[ApplicationStatus] = None,
    ) -> List[Application]:
        await society_service.require_society_manager(db, actor, society_id)
        query = select(Application).where(Application.society_id == str(society_id))
        if status is not None:
            query = query.where(Application.status == ApplicationStatus(status))
        result = await db.execute(query.order_by(Application.created_at))
        return list(result.scalars().all())

    async def list_my_applications(self, db: AsyncSession, person: User) -> List[Application]:
        result = await db.execute(
            select(Application)
            .where(Application.user_id == str(person.id))
            .order_by(Application.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== Interviews ====================

    async def create_panel(
        self,
        db: AsyncSession,
        actor: User,
        society_id: str,
        name: str,
        department_id: Optional[str] = None,
        application_ids: Iterable[str] = (),
        interviewer_ids: Iterable[str] = (),
    ) -> InterviewPanel:
        name = (name or "").strip()
        if not name or not society_id:
            raise ValidationError("Panel name and society are required.")

        society = await society_service.require_society_manager(db, actor, society_id)
        if department_id:
            await society_service.get_department(db, department_id, society.id)

        application_ids = {str(a) for a in application_ids}
        interviewer_ids = {str(i) for i in interviewer_ids}

        applications = []
        if application_ids:
            result = await db.execute(select(Application).where(Application.id.in_(application_ids)))
            applications = list(result.scalars().all())
            if len(applications) != len(application_ids):
                raise ApplicationNotFoundError(message="One or more applications were not found.")
            if any(str(a.society_id) != str(society.id) for a in applications):
                raise ValidationError("All applications must belong to this society.", field="application_ids")

        interviewers = []
        if interviewer_ids:
            result = await db.execute(select(User).where(User.id.in_(interviewer_ids)))
            interviewers = list(result.scalars().all())
            if len(interviewers) != len(interviewer_ids):
                raise ValidationError("One or more interviewers were not found.", field="interviewer_ids")

        panel = InterviewPanel(
            society_id=str(society.id),
            department_id=str(department_id) if department_id else None,
            name=name,
            created_by_id=str(actor.id),
            applications=applications,
            interviewers=interviewers,
        )
        db.add(panel)
        await db.commit()

        logger.info(
            f"[Recruitment] Panel '{name}' created for society {society.id} "
            f"({len(applications)} applications, {len(interviewers)} interviewers)"
        )
        await audit_service.record(
            db, "INTERVIEW_PANEL_CREATED", actor=actor, target_model="InterviewPanel", target_id=panel.id,
            metadata={
                "society_id": str(society.id),
                "application_ids": sorted(application_ids),
                "interviewer_ids": sorted(interviewer_ids),
            },
        )
        return panel

    async def submit_feedback(
        self,
        db: AsyncSession,
        interviewer: User,
        panel_id: str,
        application_id: str,
        rating: int,
        recommendation: Recommendation,
        comments: Optional[str] = None,
    ) -> InterviewFeedback:
        """Append-only: one feedback per (panel, interviewer, application)"""
        if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 10:
            raise ValidationError("Rating must be a whole number between 1 and 10.", field="rating")
        try:
            recommendation = Recommendation(recommendation)
        except ValueError:
            raise ValidationError("Recommendation must be REJECT, HOLD or SELECT.", field="recommendation")

        panel = await db.get(InterviewPanel, str(panel_id))
        if panel is None:
            raise PanelNotFoundError(str(panel_id))
        if str(application_id) not in {str(a.id) for a in panel.applications}:
            raise ApplicationNotFoundError(str(application_id), message="Application is not assigned to this panel.")
        if str(interviewer.id) not in {str(u.id) for u in panel.interviewers}:
            raise AuthorizationError("You are not an interviewer on this panel.")

        existing = await db.execute(
            select(InterviewFeedback.id).where(
                InterviewFeedback.panel_id == str(panel.id),
                InterviewFeedback.interviewer_id == str(interviewer.id),
                InterviewFeedback.application_id == str(application_id),
            )
        )
        if existing.first() is not None:
            raise DuplicateFeedbackError()

        feedback = InterviewFeedback(
            panel_id=str(panel.id),
            interviewer_id=str(interviewer.id),
            application_id=str(application_id),
            rating=rating,
            comments=comments,
            recommendation=recommendation,
        )
        db.add(feedback)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateFeedbackError()

        await audit_service.record(
            db, "INTERVIEW_FEEDBACK_SUBMITTED", actor=interviewer, target_model="InterviewFeedback",
            target_id=feedback.id,
            metadata={
                "panel_id": str(panel.id),
                "application_id": str(application_id),
                "rating": rating,
                "recommendation": recommendation.value,
            },
        )
        return feedback

    # ==================== Final choice ====================

    async def choose_final_society(
        self,
        db: AsyncSession,
        person: User,
        application_id: str,
    ) -> Tuple[Application, Membership, int]:
        """
        Accept one SELECTED offer.

        Every other SELECTED application of the person becomes REJECTED and the
        person becomes a MEMBER of the chosen society, in one transaction. The
        chosen application itself stays SELECTED. Returns the application, the
        active membership and how many competing offers were rejected.
        """
        async with membership_service.person_lock(person.id):
            result = await db.execute(
                select(Application).where(
                    Application.id == str(application_id),
                    Application.user_id == str(person.id),
                    Application.status == ApplicationStatus.SELECTED,
                )
            )
            application = result.scalar_one_or_none()
            if application is None:
                raise ApplicationNotFoundError(str(application_id), message="Selected application not found.")

            try:
                rejected = await db.execute(
                    update(Application)
                    .where(
                        Application.user_id == str(person.id),
                        Application.status == ApplicationStatus.SELECTED,
                        Application.id != application.id,
                    )
                    .values(status=ApplicationStatus.REJECTED, updated_at=utcnow())
                    .execution_options(synchronize_session="evaluate")
                )
                rejected_count = rejected.rowcount or 0

                membership = await membership_service.apply_transition(
                    db, person.id, application.society_id, application.department_id, Role.MEMBER,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.log_membership_event(
            "final_society_chosen", str(person.id), str(application.society_id), Role.MEMBER.value,
            rejected_offers=rejected_count,
        )
        await audit_service.record(
            db, "FINAL_SOCIETY_CHOSEN", actor=person, target_model="Application", target_id=application.id,
            metadata={
                "society_id": str(application.society_id),
                "membership_id": str(membership.id),
                "rejected_offers": rejected_count,
            },
        )
        return application, membership, rejected_count


# Singleton instance
recruitment_service = RecruitmentService()
