"""
Unit Tests for registration and account flows
"""
import pytest
from unittest.mock import AsyncMock, patch

from sqlalchemy import select, func

from app.core.exceptions import (
    AuthorizationError, EligibilityError, EmailMismatchError, InvalidCredentialsError,
    InvalidOTPError, InviteAlreadyUsedError, MembershipTransitionError, UserAlreadyExistsError,
    ValidationError,
)
from app.core.roles import Role
from app.core.security import decode_token, verify_password
from app.models.invite import Invite
from app.models.membership import Membership
from app.models.otp import OTPChallenge
from app.models.user import User
from app.services.auth_service import auth_service
from app.services.otp_service import otp_service


def registration(email, code, **overrides):
    data = {
        "first_name": "Asha",
        "last_name": "Rao",
        "email": email,
        "password": "secret123",
        "confirm_password": "secret123",
        "otp": code,
    }
    data.update(overrides)
    return data


async def count_users(session_factory, email):
    async with session_factory() as session:
        result = await session.execute(select(func.count(User.id)).where(User.email == email))
        return result.scalar_one()


class TestRegistration:

    async def test_register_student(self, db_session, session_factory):
        challenge = await otp_service.request_challenge(db_session, "asha@example.com")

        user, token = await auth_service.register_student(
            db_session, **registration("Asha@Example.com", challenge.code),
        )

        assert user.email == "asha@example.com"
        assert user.role == Role.STUDENT
        assert decode_token(token)["sub"] == str(user.id)
        async with session_factory() as session:
            remaining = (await session.execute(select(func.count(OTPChallenge.id)))).scalar_one()
        assert remaining == 0

    async def test_student_role_hint(self, db_session):
        challenge = await otp_service.request_challenge(db_session, "hint@example.com")

        user, _ = await auth_service.register_student(
            db_session, role="head", **registration("hint@example.com", challenge.code),
        )

        assert user.role == Role.HEAD

    @pytest.mark.parametrize("role", ["ADMIN", "FACULTY", "PRESIDENT", "wizard"])
    async def test_student_role_hint_restricted(self, db_session, role):
        with pytest.raises(ValidationError):
            await auth_service.register_student(
                db_session, role=role, **registration("hint@example.com", "123456"),
            )

    async def test_missing_fields(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await auth_service.register_student(db_session, **registration("x@example.com", "123456", last_name=" "))
        assert exc_info.value.status_code == 400

    async def test_password_mismatch_keeps_challenge(self, db_session):
        challenge = await otp_service.request_challenge(db_session, "mismatch@example.com")

        with pytest.raises(ValidationError):
            await auth_service.register_student(
                db_session, **registration("mismatch@example.com", challenge.code, confirm_password="other"),
            )

        # the code is still usable
        user, _ = await auth_service.register_student(
            db_session, **registration("mismatch@example.com", challenge.code),
        )
        assert user.email == "mismatch@example.com"

    async def test_wrong_otp(self, db_session, session_factory):
        await otp_service.request_challenge(db_session, "wrong@example.com")

        with pytest.raises(InvalidOTPError):
            await auth_service.register_student(db_session, **registration("wrong@example.com", "not-it"))

        assert await count_users(session_factory, "wrong@example.com") == 0

    async def test_admin_requires_allow_list(self, db_session, session_factory, set_platform_config):
        await set_platform_config(admin_emails=["chief@example.com"])
        challenge = await otp_service.request_challenge(db_session, "outsider@example.com")

        with pytest.raises(EligibilityError) as exc_info:
            await auth_service.register_admin(db_session, **registration("outsider@example.com", challenge.code))

        assert exc_info.value.status_code == 403
        assert await count_users(session_factory, "outsider@example.com") == 0

    async def test_register_admin(self, db_session, set_platform_config):
        await set_platform_config(admin_emails=["chief@example.com"])
        challenge = await otp_service.request_challenge(db_session, "chief@example.com")

        user, _ = await auth_service.register_admin(db_session, **registration("chief@example.com", challenge.code))

        assert user.role == Role.ADMIN

    async def test_register_faculty(self, db_session, set_platform_config):
        await set_platform_config(faculty_whitelist=["prof@example.com"])
        challenge = await otp_service.request_challenge(db_session, "prof@example.com")

        user, _ = await auth_service.register_faculty(db_session, **registration("prof@example.com", challenge.code))

        assert user.role == Role.FACULTY

    async def test_faculty_not_whitelisted(self, db_session):
        challenge = await otp_service.request_challenge(db_session, "prof@example.com")

        with pytest.raises(EligibilityError):
            await auth_service.register_faculty(db_session, **registration("prof@example.com", challenge.code))


class TestSignupWithInvite:

    def signup(self, token, email, **overrides):
        data = {
            "token": token,
            "email": email,
            "password": "secret123",
            "confirm_password": "secret123",
            "first_name": "Ravi",
            "last_name": "Kumar",
        }
        data.update(overrides)
        return data

    async def test_link_invite_signup(self, db_session, session_factory, society, department, make_invite):
        invite = await make_invite(society, Role.HEAD, department=department)

        user, membership, token = await auth_service.signup_with_invite(
            db_session, **self.signup(invite.token, "ravi@example.com"),
        )

        assert user.role == Role.HEAD
        assert membership.role == Role.HEAD
        assert membership.department_id == str(department.id)
        assert token
        async with session_factory() as session:
            stored = await session.get(Invite, invite.id)
        assert stored.used is True
        assert stored.used_by_id == str(user.id)

    async def test_member_invite_gives_student_hint(self, db_session, society, make_invite):
        invite = await make_invite(society, Role.MEMBER, email="ravi@example.com")

        user, membership, _ = await auth_service.signup_with_invite(
            db_session, **self.signup(invite.token, "RAVI@example.com"),
        )

        assert user.role == Role.STUDENT
        assert membership.role == Role.MEMBER

    async def test_email_mismatch(self, db_session, session_factory, society, make_invite):
        invite = await make_invite(society, Role.MEMBER, email="someone@example.com")

        with pytest.raises(EmailMismatchError):
            await auth_service.signup_with_invite(db_session, **self.signup(invite.token, "ravi@example.com"))

        assert await count_users(session_factory, "ravi@example.com") == 0

    async def test_short_password(self, db_session, society, make_invite):
        invite = await make_invite(society, Role.MEMBER)

        with pytest.raises(ValidationError):
            await auth_service.signup_with_invite(
                db_session, **self.signup(invite.token, "ravi@example.com", password="abc", confirm_password="abc"),
            )

    async def test_existing_account(self, db_session, test_user, society, make_invite):
        invite = await make_invite(society, Role.MEMBER)

        with pytest.raises(UserAlreadyExistsError):
            await auth_service.signup_with_invite(db_session, **self.signup(invite.token, test_user.email))

    async def test_used_invite(self, db_session, society, make_invite):
        invite = await make_invite(society, Role.MEMBER, used=True)

        with pytest.raises(InviteAlreadyUsedError):
            await auth_service.signup_with_invite(db_session, **self.signup(invite.token, "ravi@example.com"))

    async def test_failed_transition_creates_nothing(self, db_session, session_factory, society, make_invite):
        invite = await make_invite(society, Role.MEMBER)
        invite_id, token = invite.id, invite.token

        with patch(
            "app.services.invite_service.membership_service.apply_transition",
            new=AsyncMock(side_effect=MembershipTransitionError("new-user")),
        ):
            with pytest.raises(MembershipTransitionError):
                await auth_service.signup_with_invite(db_session, **self.signup(token, "ravi@example.com"))

        assert await count_users(session_factory, "ravi@example.com") == 0
        async with session_factory() as session:
            assert (await session.get(Invite, invite_id)).used is False
            memberships = (await session.execute(select(func.count(Membership.id)))).scalar_one()
        assert memberships == 0


class TestLogin:

    async def test_login(self, db_session, test_user, default_password):
        user, token = await auth_service.login(db_session, test_user.email.upper(), default_password)

        assert user.id == test_user.id
        assert user.last_login is not None
        assert decode_token(token)["role"] == Role.STUDENT.value

    async def test_wrong_password(self, db_session, test_user):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await auth_service.login(db_session, test_user.email, "not-the-password")
        assert exc_info.value.status_code == 401

    async def test_unknown_email(self, db_session, default_password):
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(db_session, "ghost@example.com", default_password)

    async def test_inactive_account(self, db_session, make_user, default_password):
        user = await make_user(is_active=False)

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(db_session, user.email, default_password)

    async def test_role_mismatch(self, db_session, test_user, default_password):
        with pytest.raises(AuthorizationError) as exc_info:
            await auth_service.login(db_session, test_user.email, default_password, role="faculty")
        assert exc_info.value.status_code == 403

    async def test_matching_role(self, db_session, faculty_user, default_password):
        user, _ = await auth_service.login(db_session, faculty_user.email, default_password, role="faculty")

        assert user.role == Role.FACULTY


class TestChangePassword:

    async def test_change_password(self, db_session, test_user, default_password):
        await auth_service.change_password(db_session, test_user, default_password, "newpass456", "newpass456")

        assert verify_password("newpass456", test_user.hashed_password)
        await auth_service.login(db_session, test_user.email, "newpass456")

    async def test_wrong_old_password(self, db_session, test_user):
        with pytest.raises(ValidationError):
            await auth_service.change_password(db_session, test_user, "nope", "newpass456", "newpass456")

    async def test_confirmation_mismatch(self, db_session, test_user, default_password):
        with pytest.raises(ValidationError):
            await auth_service.change_password(db_session, test_user, default_password, "newpass456", "other456")
