"""
Credential & OTP verifier.

A challenge is a 6-digit code bound to an email. Codes are unique across the
whole table (not per email); generation retries on a unique-constraint hit.
Only the most recent challenge for an email counts, it is usable while
now < expires_at, and it is deleted on first successful use.
"""

import secrets
import string
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    SocietySyncError, ValidationError, UserAlreadyExistsError,
    OTPNotFoundError, InvalidOTPError, OTPExpiredError,
)
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models.otp import OTPChallenge
from app.models.user import User
from app.services.eligibility_service import eligibility_service, normalize_email
from app.services.email_service import email_service


class OTPService:

    def generate_code(self) -> str:
        return "".join(secrets.choice(string.digits) for _ in range(settings.OTP_LENGTH))

    async def _latest_challenge(self, db: AsyncSession, email: str) -> Optional[OTPChallenge]:
        result = await db.execute(
            select(OTPChallenge)
            .where(OTPChallenge.email == email)
            .order_by(OTPChallenge.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def request_challenge(
        self,
        db: AsyncSession,
        email: str,
        account_type: Optional[str] = None,
    ) -> OTPChallenge:
        """
        Issue a new challenge and try to mail it.

        A mail failure is logged only; the stored challenge stays valid.
        """
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required", field="email")

        result = await db.execute(select(User.id).where(User.email == email))
        if result.scalar_one_or_none() is not None:
            logger.log_auth_event("otp_request", False, email, "user already exists")
            raise UserAlreadyExistsError()

        if account_type == "admin":
            await eligibility_service.require_admin_eligible(db, email)
        elif account_type == "faculty":
            await eligibility_service.require_faculty_eligible(db, email)

        challenge = None
        for attempt in range(settings.OTP_MAX_GENERATION_ATTEMPTS):
            now = utcnow()
            challenge = OTPChallenge(
                email=email,
                code=self.generate_code(),
                created_at=now,
                expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
            )
            db.add(challenge)
            try:
                await db.commit()
                break
            except IntegrityError:
                await db.rollback()
                logger.warning(f"[OTP] Code collision on attempt {attempt + 1}, regenerating")
                challenge = None

        if challenge is None:
            raise SocietySyncError("Could not generate a verification code, please retry", code="OTP_GENERATION_FAILED")

        logger.log_auth_event("otp_request", True, email)

        try:
            delivered = await email_service.send_otp_email(email, challenge.code)
        except Exception as e:
            logger.log_error_with_context(e, context="otp-delivery", user_email=email)
            delivered = False
        if not delivered:
            logger.warning(f"[OTP] Code for {email} was stored but not delivered")

        return challenge

    async def validate_challenge(self, db: AsyncSession, email: str, code: str) -> OTPChallenge:
        """Check the latest challenge for the email without consuming it"""
        email = normalize_email(email)
        challenge = await self._latest_challenge(db, email)

        if challenge is None:
            raise OTPNotFoundError()

        if challenge.code != str(code or "").strip():
            logger.log_auth_event("otp_verify", False, email, "code mismatch")
            raise InvalidOTPError()

        if challenge.is_expired_at(utcnow()):
            logger.log_auth_event("otp_verify", False, email, "expired")
            raise OTPExpiredError()

        return challenge

    async def verify_challenge(self, db: AsyncSession, email: str, code: str) -> None:
        """Validate and consume the challenge"""
        challenge = await self.validate_challenge(db, email, code)
        await db.delete(challenge)
        await db.commit()
        logger.log_auth_event("otp_verify", True, normalize_email(email))

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete challenges past their expiry; storage hygiene only"""
        result = await db.execute(delete(OTPChallenge).where(OTPChallenge.expires_at <= utcnow()))
        await db.commit()
        if result.rowcount:
            logger.info(f"[OTP] Purged {result.rowcount} expired challenges")
        return result.rowcount or 0


# Singleton instance
otp_service = OTPService()
