"""
Unit Tests for the membership ledger
"""
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    AuthorizationError, ConflictError, MembershipTransitionError, ValidationError,
)
from app.core.roles import Role
from app.core.types import utcnow
from app.models.audit_log import AuditLog
from app.models.membership import Membership
from app.services.membership_service import membership_service


async def active_memberships(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(
            select(Membership).where(Membership.user_id == str(user_id), Membership.is_active.is_(True))
        )
        return list(result.scalars().all())


async def all_memberships(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(select(Membership).where(Membership.user_id == str(user_id)))
        return list(result.scalars().all())


class TestSetActiveMembership:

    async def test_first_membership(self, db_session, session_factory, test_user, society):
        membership = await membership_service.set_active_membership(
            db_session, test_user.id, society.id, None, Role.MEMBER,
        )

        assert membership.is_active
        assert membership.role == Role.MEMBER
        active = await active_memberships(session_factory, test_user.id)
        assert [m.id for m in active] == [membership.id]

    async def test_transition_deactivates_previous(self, db_session, session_factory, test_user,
                                                   society, department, make_society):
        first = await membership_service.set_active_membership(
            db_session, test_user.id, society.id, department.id, Role.MEMBER,
        )
        other = await make_society()
        second = await membership_service.set_active_membership(
            db_session, test_user.id, other.id, None, Role.CORE,
        )

        active = await active_memberships(session_factory, test_user.id)
        assert [m.id for m in active] == [second.id]

        history = {m.id: m for m in await all_memberships(session_factory, test_user.id)}
        assert history[first.id].is_active is False
        assert history[first.id].ended_at is not None

    async def test_same_target_is_idempotent(self, db_session, session_factory, test_user, society, department):
        first = await membership_service.set_active_membership(
            db_session, test_user.id, society.id, department.id, Role.HEAD,
        )
        again = await membership_service.set_active_membership(
            db_session, test_user.id, society.id, department.id, Role.HEAD,
        )

        assert again.id == first.id
        assert len(await all_memberships(session_factory, test_user.id)) == 1

    async def test_audits_change(self, db_session, test_user, society, admin_user):
        await membership_service.set_active_membership(
            db_session, test_user.id, society.id, None, Role.CORE, actor=admin_user,
        )

        entry = (await db_session.execute(
            select(AuditLog).where(AuditLog.action == "MEMBERSHIP_CHANGED")
        )).scalar_one()
        assert entry.actor_id == str(admin_user.id)
        assert entry.details["user_id"] == str(test_user.id)
        assert entry.details["role"] == "CORE"

    @pytest.mark.parametrize("role", [Role.PRESIDENT, Role.STUDENT, Role.ADMIN])
    async def test_non_membership_role_rejected(self, db_session, test_user, society, role):
        with pytest.raises(ValidationError):
            await membership_service.set_active_membership(db_session, test_user.id, society.id, None, role)

    async def test_concurrent_transitions_leave_one_active(self, db_session, session_factory, test_user,
                                                           society, make_society):
        other = await make_society()

        async def move(society_id, role):
            async with session_factory() as session:
                return await membership_service.set_active_membership(
                    session, test_user.id, society_id, None, role,
                )

        results = await asyncio.gather(
            move(society.id, Role.MEMBER),
            move(other.id, Role.CORE),
            move(society.id, Role.CORE),
        )

        active = await active_memberships(session_factory, test_user.id)
        assert len(active) == 1
        assert active[0].id in {m.id for m in results}


class TestApplyTransitionFailures:

    async def test_insert_failure_keeps_previous_membership(self, db_session, session_factory, test_user,
                                                            society, make_membership, make_society):
        previous = await make_membership(test_user, society, Role.MEMBER)
        other = await make_society()
        user_id, previous_id, other_id = test_user.id, previous.id, other.id

        with patch.object(
            db_session, "flush",
            new=AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("unique"))),
        ):
            with pytest.raises(MembershipTransitionError) as exc_info:
                await membership_service.set_active_membership(
                    db_session, user_id, other_id, None, Role.CORE,
                )

        assert exc_info.value.status_code == 500
        active = await active_memberships(session_factory, user_id)
        assert [m.id for m in active] == [previous_id]

    async def test_stale_active_row_is_a_conflict(self, db_session, session_factory, test_user,
                                                  society, make_membership, make_society):
        stale = await make_membership(test_user, society, Role.MEMBER)
        other = await make_society()
        user_id, stale_id, other_id = test_user.id, stale.id, other.id

        # Another request already ended this membership
        async with session_factory() as session:
            await session.execute(
                update(Membership).where(Membership.id == stale_id).values(is_active=False, ended_at=utcnow())
            )
            await session.commit()

        with patch.object(membership_service, "get_active_membership", new=AsyncMock(return_value=stale)):
            with pytest.raises(ConflictError) as exc_info:
                await membership_service.set_active_membership(
                    db_session, user_id, other_id, None, Role.CORE,
                )

        assert exc_info.value.code == "MEMBERSHIP_CONFLICT"
        assert await active_memberships(session_factory, user_id) == []


class TestQueries:

    async def test_list_by_orders_core_head_member(self, db_session, make_user, make_membership,
                                                   society, department):
        member = await make_user()
        head = await make_user()
        core = await make_user()
        await make_membership(member, society, Role.MEMBER, department)
        await make_membership(head, society, Role.HEAD, department)
        await make_membership(core, society, Role.CORE)

        roster = await membership_service.list_by(db_session, society_id=society.id)

        assert [m.role for m in roster] == [Role.CORE, Role.HEAD, Role.MEMBER]

    async def test_list_by_department(self, db_session, make_user, make_membership, society,
                                      department, make_department):
        other_department = await make_department(society)
        inside = await make_user()
        outside = await make_user()
        await make_membership(inside, society, Role.MEMBER, department)
        await make_membership(outside, society, Role.MEMBER, other_department)

        roster = await membership_service.list_by(db_session, department_id=department.id)

        assert [m.user_id for m in roster] == [str(inside.id)]

    async def test_list_by_requires_scope(self, db_session):
        with pytest.raises(ValidationError):
            await membership_service.list_by(db_session)

    async def test_department_head_is_latest_active_head(self, db_session, make_user, make_membership,
                                                         society, department):
        earlier = await make_user()
        later = await make_user()
        now = utcnow()
        await make_membership(earlier, society, Role.HEAD, department, started_at=now - timedelta(days=3))
        await make_membership(later, society, Role.HEAD, department, started_at=now)

        head = await membership_service.get_department_head(db_session, department.id)

        assert head.user_id == str(later.id)

    async def test_department_without_head(self, db_session, department):
        assert await membership_service.get_department_head(db_session, department.id) is None

    async def test_count_active_by_department(self, db_session, make_user, make_membership,
                                              society, department):
        for _ in range(3):
            await make_membership(await make_user(), society, Role.MEMBER, department)
        await make_membership(await make_user(), society, Role.CORE)

        counts = await membership_service.count_active_by_department(db_session, society.id)

        assert counts == {str(department.id): 3}
        total = (await db_session.execute(select(func.count(Membership.id)))).scalar_one()
        assert total == 4


class TestStandingChecks:

    async def test_require_core_in_other_society(self, db_session, core_user, make_society):
        other = await make_society()

        with pytest.raises(AuthorizationError):
            await membership_service.require_core(db_session, core_user, other.id)

    async def test_require_core_ignores_role_hint(self, db_session, make_user):
        # Registered as CORE but holds no membership
        user = await make_user(Role.CORE)

        with pytest.raises(AuthorizationError):
            await membership_service.require_core(db_session, user)

    async def test_require_head_needs_department(self, db_session, make_user, make_membership, society):
        user = await make_user()
        await make_membership(user, society, Role.HEAD)

        with pytest.raises(AuthorizationError):
            await membership_service.require_head(db_session, user)

    async def test_require_head(self, db_session, head_user, department):
        membership = await membership_service.require_head(db_session, head_user)

        assert membership.department_id == str(department.id)
