"""
Unit Tests for the audit sink
"""
from unittest.mock import patch

from sqlalchemy import select

from app.models.audit_log import AuditLog
from app.services.audit_service import audit_service


async def test_record_writes_entry(db_session, core_user):
    written = await audit_service.record(
        db_session, "MEMBERSHIP_CHANGED", actor=core_user, target_model="Membership",
        target_id="m-1", metadata={"role": "CORE"},
    )

    assert written is True
    entry = (await db_session.execute(select(AuditLog))).scalar_one()
    assert entry.action == "MEMBERSHIP_CHANGED"
    assert entry.actor_id == str(core_user.id)
    assert entry.actor_role == "CORE"
    assert entry.details == {"role": "CORE"}


async def test_record_without_actor(db_session):
    assert await audit_service.record(db_session, "SOCIETY_CREATED") is True

    entry = (await db_session.execute(select(AuditLog))).scalar_one()
    assert entry.actor_id is None
    assert entry.details == {}


async def test_failure_is_swallowed(db_session, test_user):
    with patch("app.services.audit_service.AuditLog", side_effect=RuntimeError("disk full")):
        written = await audit_service.record(db_session, "USER_LOGIN", actor=test_user)

    assert written is False
    assert (await db_session.execute(select(AuditLog))).first() is None
