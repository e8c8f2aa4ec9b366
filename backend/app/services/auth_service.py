"""
Registration and account flows.

Every self-service registration is OTP gated: the latest challenge for the
email is validated inline, then the eligibility gate (admin / faculty), then
the duplicate check, and only then is the challenge consumed and the person
created. Invite signup skips the OTP since holding the token proves intent.
"""

from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError, InvalidCredentialsError, UserAlreadyExistsError, ValidationError,
)
from app.core.logging_config import logger, set_user_id
from app.core.roles import Role, STUDENT_SIGNUP_ROLES
from app.core.security import get_password_hash, verify_password, create_user_token
from app.core.types import utcnow
from app.models.membership import Membership
from app.models.user import User
from app.services.audit_service import audit_service
from app.services.eligibility_service import eligibility_service, normalize_email
from app.services.invite_service import invite_service
from app.services.membership_service import membership_service
from app.services.otp_service import otp_service

MIN_PASSWORD_LENGTH = 6


def _require_fields(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])


def _check_passwords(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise ValidationError("Passwords do not match", field="confirm_password")


class AuthService:

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    # ==================== Registration ====================

    async def _register(
        self,
        db: AsyncSession,
        role: Role,
        audit_action: str,
        first_name: Optional[str],
        last_name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
        otp: Optional[str],
    ) -> Tuple[User, str]:
        _require_fields(
            first_name=first_name, last_name=last_name, email=email,
            password=password, confirm_password=confirm_password, otp=otp,
        )
        _check_passwords(password, confirm_password)
        email = normalize_email(email)

        challenge = await otp_service.validate_challenge(db, email, otp)

        if role == Role.ADMIN:
            await eligibility_service.require_admin_eligible(db, email)
        elif role == Role.FACULTY:
            await eligibility_service.require_faculty_eligible(db, email)

        if await self.get_user_by_email(db, email) is not None:
            logger.log_auth_event("register", False, email, "user already exists")
            raise UserAlreadyExistsError()

        await db.delete(challenge)
        user = User(
            email=email,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            hashed_password=get_password_hash(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise UserAlreadyExistsError()

        set_user_id(str(user.id))
        logger.log_auth_event("register", True, email, user_role=role.value)
        await audit_service.record(
            db, audit_action, actor=user, target_model="User", target_id=user.id,
            metadata={"email": email, "role": role.value},
        )
        return user, create_user_token(user)

    async def register_admin(self, db: AsyncSession, first_name=None, last_name=None, email=None,
                             password=None, confirm_password=None, otp=None) -> Tuple[User, str]:
        return await self._register(
            db, Role.ADMIN, "ADMIN_REGISTERED",
            first_name, last_name, email, password, confirm_password, otp,
        )

    async def register_faculty(self, db: AsyncSession, first_name=None, last_name=None, email=None,
                               password=None, confirm_password=None, otp=None) -> Tuple[User, str]:
        return await self._register(
            db, Role.FACULTY, "FACULTY_REGISTERED",
            first_name, last_name, email, password, confirm_password, otp,
        )

    async def register_student(self, db: AsyncSession, first_name=None, last_name=None, email=None,
                               password=None, confirm_password=None, otp=None,
                               role: Optional[str] = None) -> Tuple[User, str]:
        """The optional role is a display hint only; standing comes from memberships"""
        role_hint = Role.STUDENT
        if role:
            try:
                role_hint = Role(str(role).upper())
            except ValueError:
                raise ValidationError(f"Unknown role {role}", field="role")
            if role_hint not in STUDENT_SIGNUP_ROLES:
                raise ValidationError("Role must be one of STUDENT, CORE, HEAD, MEMBER", field="role")

        return await self._register(
            db, role_hint, "STUDENT_REGISTERED",
            first_name, last_name, email, password, confirm_password, otp,
        )

    async def signup_with_invite(
        self,
        db: AsyncSession,
        token: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
    ) -> Tuple[User, Membership, str]:
        """Create the account and redeem the invite in one transaction"""
        _require_fields(
            token=token, email=email, password=password, confirm_password=confirm_password,
            first_name=first_name, last_name=last_name,
        )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password",
            )
        _check_passwords(password, confirm_password)
        email = normalize_email(email)

        invite = await invite_service.load_redeemable(db, token, email)

        if await self.get_user_by_email(db, email) is not None:
            raise UserAlreadyExistsError()

        role_hint = invite.role if invite.role in (Role.HEAD, Role.CORE) else Role.STUDENT
        user = User(
            email=email,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            hashed_password=get_password_hash(password),
            role=role_hint,
            is_active=True,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise UserAlreadyExistsError()

        async with membership_service.person_lock(user.id):
            try:
                membership = await invite_service.redeem_loaded(db, invite, user)
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise UserAlreadyExistsError()
            except Exception:
                await db.rollback()
                raise

        set_user_id(str(user.id))
        logger.log_auth_event("signup_with_invite", True, email, user_role=role_hint.value)
        await invite_service.record_redemption(db, invite, user, membership)
        return user, membership, create_user_token(user)

    # ==================== Sessions ====================

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        role: Optional[str] = None,
    ) -> Tuple[User, str]:
        email = normalize_email(email)
        user = await self.get_user_by_email(db, email)

        if user is None or not verify_password(password or "", user.hashed_password):
            logger.log_auth_event("login", False, email, "invalid credentials")
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.log_auth_event("login", False, email, "inactive account")
            raise InvalidCredentialsError()

        if role and str(role).upper() != user.role.value:
            logger.log_auth_event("login", False, email, f"role mismatch ({role})")
            raise AuthorizationError(f"This account is not registered as {str(role).lower()}.")

        user.last_login = utcnow()
        await db.commit()

        set_user_id(str(user.id))
        logger.log_auth_event("login", True, email, user_role=user.role.value)
        await audit_service.record(db, "USER_LOGIN", actor=user, target_model="User", target_id=user.id)
        return user, create_user_token(user)

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        old_password: Optional[str],
        new_password: Optional[str],
        confirm_password: Optional[str],
    ) -> None:
        _require_fields(old_password=old_password, new_password=new_password, confirm_password=confirm_password)
        if not verify_password(old_password, user.hashed_password):
            raise ValidationError("Current password is incorrect", field="old_password")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="new_password",
            )
        _check_passwords(new_password, confirm_password)

        user.hashed_password = get_password_hash(new_password)
        await db.commit()

        logger.log_auth_event("change_password", True, user.email)
        await audit_service.record(db, "PASSWORD_CHANGED", actor=user, target_model="User", target_id=user.id)


# Singleton instance
auth_service = AuthService()
