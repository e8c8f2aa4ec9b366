"""
Unit Tests for the role eligibility gate
"""
import pytest

from sqlalchemy import select

from app.core.exceptions import EligibilityError
from app.models.audit_log import AuditLog
from app.models.platform_config import PlatformConfig
from app.services.eligibility_service import eligibility_service, normalize_email_list


def test_normalize_email_list_trims_lowercases_and_dedupes():
    assert normalize_email_list([" A@X.com", "a@x.com", "", "b@x.com "]) == ["a@x.com", "b@x.com"]


async def test_config_created_lazily_with_empty_lists(db_session):
    config = await eligibility_service.get_platform_config(db_session)

    assert config.admin_emails == []
    assert config.faculty_whitelist == []
    again = await eligibility_service.get_platform_config(db_session)
    assert again.id == config.id


async def test_membership_checks_are_case_insensitive(db_session, set_platform_config):
    await set_platform_config(admin_emails=["root@example.com"], faculty_whitelist=["prof@example.com"])

    assert await eligibility_service.is_admin_eligible(db_session, "  ROOT@example.com")
    assert await eligibility_service.is_faculty_eligible(db_session, "Prof@Example.com")
    assert not await eligibility_service.is_admin_eligible(db_session, "prof@example.com")
    assert not await eligibility_service.is_faculty_eligible(db_session, "root@example.com")


async def test_require_raises_eligibility_error(db_session, set_platform_config):
    await set_platform_config()

    with pytest.raises(EligibilityError) as exc_info:
        await eligibility_service.require_faculty_eligible(db_session, "someone@example.com")

    assert exc_info.value.status_code == 403


async def test_update_replaces_lists_and_audits(db_session, admin_user):
    await eligibility_service.update_platform_config(
        db_session, admin_user, admin_emails=["A@example.com", "a@example.com"],
    )
    config = await eligibility_service.update_platform_config(
        db_session, admin_user, faculty_whitelist=["f@example.com"],
    )

    assert config.admin_emails == ["a@example.com"]
    assert config.faculty_whitelist == ["f@example.com"]

    rows = (await db_session.execute(select(PlatformConfig))).scalars().all()
    assert len(rows) == 1

    actions = (await db_session.execute(
        select(AuditLog.action).where(AuditLog.action == "PLATFORM_CONFIG_UPDATED")
    )).scalars().all()
    assert len(actions) == 2
