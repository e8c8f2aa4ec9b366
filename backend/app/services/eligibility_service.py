"""
Role eligibility gate.

Admin and faculty registration is only open to emails on the platform-wide
allow-lists held in the PlatformConfig singleton.
"""

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EligibilityError
from app.core.logging_config import logger
from app.core.roles import Role
from app.models.platform_config import PlatformConfig
from app.models.user import User
from app.services.audit_service import audit_service


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_email_list(emails: Iterable[str]) -> List[str]:
    """Lower-case, trim, drop blanks and duplicates while keeping order"""
    seen = []
    for email in emails or []:
        cleaned = normalize_email(email)
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class EligibilityService:

    async def get_platform_config(self, db: AsyncSession) -> PlatformConfig:
        """Return the singleton, creating it with empty lists on first read"""
        result = await db.execute(select(PlatformConfig).order_by(PlatformConfig.created_at).limit(1))
        config = result.scalar_one_or_none()
        if config is None:
            config = PlatformConfig(admin_emails=[], faculty_whitelist=[])
            db.add(config)
            await db.commit()
            logger.info("[Eligibility] Created empty platform config")
        return config

    async def is_admin_eligible(self, db: AsyncSession, email: str) -> bool:
        config = await self.get_platform_config(db)
        return normalize_email(email) in (config.admin_emails or [])

    async def is_faculty_eligible(self, db: AsyncSession, email: str) -> bool:
        config = await self.get_platform_config(db)
        return normalize_email(email) in (config.faculty_whitelist or [])

    async def require_admin_eligible(self, db: AsyncSession, email: str) -> None:
        if not await self.is_admin_eligible(db, email):
            logger.log_auth_event("admin_eligibility", False, normalize_email(email), "not on admin allow-list")
            raise EligibilityError(Role.ADMIN.value)

    async def require_faculty_eligible(self, db: AsyncSession, email: str) -> None:
        if not await self.is_faculty_eligible(db, email):
            logger.log_auth_event("faculty_eligibility", False, normalize_email(email), "not on faculty whitelist")
            raise EligibilityError(Role.FACULTY.value)

    async def update_platform_config(
        self,
        db: AsyncSession,
        actor: User,
        admin_emails: Optional[Iterable[str]] = None,
        faculty_whitelist: Optional[Iterable[str]] = None,
    ) -> PlatformConfig:
        """
        Replace either list wholesale.

        Concurrent editors are last-writer-wins; this is a low-frequency admin path.
        """
        config = await self.get_platform_config(db)

        if admin_emails is not None:
            config.admin_emails = normalize_email_list(admin_emails)
        if faculty_whitelist is not None:
            config.faculty_whitelist = normalize_email_list(faculty_whitelist)

        await db.commit()

        logger.info(
            f"[Eligibility] Platform config updated by {actor.email}: "
            f"{len(config.admin_emails)} admins, {len(config.faculty_whitelist)} faculty"
        )
        await audit_service.record(
            db,
            "PLATFORM_CONFIG_UPDATED",
            actor=actor,
            target_model="PlatformConfig",
            target_id=config.id,
            metadata={
                "admin_emails": config.admin_emails,
                "faculty_whitelist": config.faculty_whitelist,
            },
        )
        return config


# Singleton instance
eligibility_service = EligibilityService()
