"""
Membership ledger.

Single source of truth for who holds which role in which society. The one
rule everything else depends on: a person has at most one active membership.

A role change is a deactivate-then-create pair that always runs inside one
transaction. Concurrent changes for the same person are serialised by an
in-process lock, a row lock on the person, a compare-and-swap on the active
flag, and finally the partial unique index on memberships.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError, ConflictError, MembershipTransitionError, ValidationError,
)
from app.core.logging_config import logger
from app.core.roles import Role, MEMBERSHIP_ROLES, MEMBERSHIP_ROLE_RANK
from app.core.types import utcnow
from app.models.membership import Membership
from app.models.user import User
from app.services.audit_service import audit_service


class MembershipService:

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def person_lock(self, user_id: str):
        """
        Hold for the whole unit of work that changes a person's membership,
        up to and including the commit.
        """
        key = str(user_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield

    async def get_active_membership(self, db: AsyncSession, user_id: str) -> Optional[Membership]:
        result = await db.execute(
            select(Membership).where(
                Membership.user_id == str(user_id),
                Membership.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def apply_transition(
        self,
        db: AsyncSession,
        user_id: str,
        society_id: str,
        department_id: Optional[str],
        role: Role,
    ) -> Membership:
        """
        Deactivate the current membership and create the new one, without committing.

        Callers run this inside their own transaction while holding
        `person_lock(user_id)` and commit afterwards. Repeating a transition to
        the membership the person already holds returns it unchanged.
        """
        role = Role(role)
        if role not in MEMBERSHIP_ROLES:
            raise ValidationError(f"{role.value} is not a membership role", field="role")

        user_id = str(user_id)

        # Row lock on the person; serialises concurrent transitions on Postgres
        await db.execute(select(User.id).where(User.id == user_id).with_for_update())

        current = await self.get_active_membership(db, user_id)
        if current is not None and current.matches(society_id, department_id, role):
            logger.log_membership_event("unchanged", user_id, str(society_id), role.value)
            return current

        now = utcnow()

        if current is not None:
            result = await db.execute(
                update(Membership)
                .where(Membership.id == current.id, Membership.is_active == True)  # noqa: E712
                .values(is_active=False, ended_at=now)
                .execution_options(synchronize_session="evaluate")
            )
            if result.rowcount != 1:
                raise ConflictError(
                    "Membership was changed by another request, please retry",
                    code="MEMBERSHIP_CONFLICT",
                )

        membership = Membership(
            user_id=user_id,
            society_id=str(society_id),
            department_id=str(department_id) if department_id else None,
            role=role,
            is_active=True,
            started_at=now,
            created_at=now,
        )
        db.add(membership)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            # Undo the deactivation together with the failed insert
            await db.rollback()
            logger.log_error_with_context(e, context="membership-transition", user_id=user_id)
            raise MembershipTransitionError(user_id, reason=type(e).__name__)

        logger.log_membership_event(
            "activated",
            user_id,
            str(society_id),
            role.value,
            previous_membership_id=str(current.id) if current else None,
        )
        return membership

    async def set_active_membership(
        self,
        db: AsyncSession,
        user_id: str,
        society_id: str,
        department_id: Optional[str],
        role: Role,
        actor: Optional[User] = None,
    ) -> Membership:
        """Run a transition as its own unit of work and audit it"""
        async with self.person_lock(user_id):
            try:
                membership = await self.apply_transition(db, user_id, society_id, department_id, role)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await audit_service.record(
            db,
            "MEMBERSHIP_CHANGED",
            actor=actor,
            target_model="Membership",
            target_id=membership.id,
            metadata={
                "user_id": str(user_id),
                "society_id": str(society_id),
                "department_id": str(department_id) if department_id else None,
                "role": Role(role).value,
            },
        )
        return membership

    async def list_by(
        self,
        db: AsyncSession,
        society_id: Optional[str] = None,
        department_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[Membership]:
        """Roster for a society or department: CORE, then HEAD, then MEMBER, oldest first"""
        if not society_id and not department_id:
            raise ValidationError("A society or department is required")

        query = select(Membership)
        if society_id:
            query = query.where(Membership.society_id == str(society_id))
        if department_id:
            query = query.where(Membership.department_id == str(department_id))
        if active_only:
            query = query.where(Membership.is_active.is_(True))

        result = await db.execute(query.order_by(Membership.created_at))
        memberships = list(result.scalars().all())
        return sorted(memberships, key=lambda m: MEMBERSHIP_ROLE_RANK.get(m.role, len(MEMBERSHIP_ROLE_RANK)))

    async def get_department_head(self, db: AsyncSession, department_id: str) -> Optional[Membership]:
        """The head is whoever most recently became an active HEAD of the department"""
        result = await db.execute(
            select(Membership)
            .where(
                Membership.department_id == str(department_id),
                Membership.role == Role.HEAD,
                Membership.is_active.is_(True),
            )
            .order_by(Membership.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_active_by_department(self, db: AsyncSession, society_id: str) -> Dict[str, int]:
        result = await db.execute(
            select(Membership.department_id, func.count(Membership.id))
            .where(
                Membership.society_id == str(society_id),
                Membership.is_active.is_(True),
                Membership.department_id.is_not(None),
            )
            .group_by(Membership.department_id)
        )
        return {str(department_id): count for department_id, count in result.all()}

    # ==================== Standing checks ====================

    async def require_active_role(
        self,
        db: AsyncSession,
        user: User,
        roles: Iterable[Role],
        society_id: Optional[str] = None,
        message: str = "You do not have the required society role for this action.",
    ) -> Membership:
        """Resolve the caller's current standing from the ledger, never from the token"""
        membership = await self.get_active_membership(db, user.id)
        if membership is None or membership.role not in set(roles):
            raise AuthorizationError(message)
        if society_id and str(membership.society_id) != str(society_id):
            raise AuthorizationError(message)
        return membership

    async def require_core(self, db: AsyncSession, user: User, society_id: Optional[str] = None) -> Membership:
        return await self.require_active_role(
            db, user, [Role.CORE], society_id,
            message="Only an active core member of this society can perform this action.",
        )

    async def require_head(self, db: AsyncSession, user: User) -> Membership:
        membership = await self.require_active_role(
            db, user, [Role.HEAD],
            message="Only an active department head can perform this action.",
        )
        if not membership.department_id:
            raise AuthorizationError("Your head membership is not linked to a department.")
        return membership


# Singleton instance
membership_service = MembershipService()
