"""
Invite ledger.

Invites are single-use, time-bound tokens that grant a society role when
redeemed. Two shapes exist:

- targeted: bound to one email, only that person may redeem it
- link: bound to nobody, whoever holds the token may redeem it

Redemption claims the invite with a conditional update and moves the
person's membership in the same transaction, so a token can only ever be
redeemed once and a failed transition leaves the invite unused.
"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AuthorizationError, EmailMismatchError, InviteAlreadyUsedError, InviteExpiredError,
    InviteNotFoundError, ValidationError,
)
from app.core.logging_config import logger
from app.core.roles import Role, INVITE_ROLES
from app.core.types import utcnow, to_naive_utc
from app.models.invite import Invite, InviteKind, is_link_placeholder, link_placeholder_email
from app.models.membership import Membership
from app.models.society import Society, Department
from app.models.user import User
from app.services.audit_service import audit_service
from app.services.eligibility_service import normalize_email
from app.services.email_service import email_service
from app.services.membership_service import membership_service
from app.services.society_service import society_service


class InviteService:

    def generate_token(self) -> str:
        return secrets.token_urlsafe(32)

    def build_invite_url(self, token: str) -> str:
        return f"{settings.CLIENT_URL.rstrip('/')}/accept-invite?token={token}"

    async def get_by_token(self, db: AsyncSession, token: str) -> Optional[Invite]:
        if not token:
            return None
        result = await db.execute(select(Invite).where(Invite.token == token.strip()))
        return result.scalar_one_or_none()

    # ==================== Issuance ====================

    async def _check_issuer(
        self,
        db: AsyncSession,
        issuer: User,
        society: Society,
        department: Optional[Department],
        role: Role,
    ) -> None:
        """
        Admins and the society's coordinator may issue any invite role.
        An active CORE of the society may invite HEADs and MEMBERs.
        An active HEAD may invite MEMBERs to their own department.
        """
        if issuer.role == Role.ADMIN or society_service.is_coordinator(society, issuer):
            return

        membership = await membership_service.get_active_membership(db, issuer.id)
        if membership is not None and str(membership.society_id) == str(society.id):
            if membership.role == Role.CORE and role in (Role.HEAD, Role.MEMBER):
                return
            if (
                membership.role == Role.HEAD
                and role == Role.MEMBER
                and department is not None
                and str(department.id) == str(membership.department_id)
            ):
                return

        raise AuthorizationError(f"You are not allowed to issue {role.value} invites for this society.")

    async def issue(
        self,
        db: AsyncSession,
        issuer: User,
        society_id: str,
        role: Role,
        email: Optional[str] = None,
        department_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        audit_action: str = "INVITE_CREATED",
    ) -> Invite:
        """Create an invite; `email=None` makes it a link invite"""
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown role {role}", field="role")
        if role not in INVITE_ROLES:
            raise ValidationError("Invite role must be one of CORE, HEAD, MEMBER, PRESIDENT", field="role")

        society = await society_service.get_society(db, society_id)
        department = None
        if department_id:
            department = await society_service.get_department(db, department_id, society.id)
        if role == Role.HEAD and department is None:
            raise ValidationError("A department is required for head invites", field="department_id")

        await self._check_issuer(db, issuer, society, department, role)

        now = utcnow()
        token = self.generate_token()

        if email is None:
            kind = InviteKind.LINK
            stored_email = link_placeholder_email(token)
            default_lifetime = timedelta(days=settings.INVITE_LINK_EXPIRE_DAYS)
        else:
            kind = InviteKind.TARGETED
            stored_email = normalize_email(email)
            if not stored_email:
                raise ValidationError("Email is required for an email invite", field="email")
            if is_link_placeholder(stored_email):
                raise ValidationError("This address is reserved and cannot receive invites", field="email")
            default_lifetime = timedelta(days=settings.INVITE_EMAIL_EXPIRE_DAYS)

        if expires_at is not None:
            expires_at = to_naive_utc(expires_at)
            if expires_at <= now:
                raise ValidationError("Expiry must be in the future", field="expires_at")
        else:
            expires_at = now + default_lifetime

        invite = Invite(
            kind=kind,
            email=stored_email,
            society_id=str(society.id),
            department_id=str(department.id) if department else None,
            role=role,
            token=token,
            expires_at=expires_at,
            used=False,
            created_by_id=str(issuer.id),
            created_at=now,
        )
        db.add(invite)
        await db.commit()

        logger.info(
            f"[Invite] {issuer.email} issued {kind.value} {role.value} invite {invite.id} "
            f"for society {society.id}"
        )
        await audit_service.record(
            db,
            audit_action,
            actor=issuer,
            target_model="Invite",
            target_id=invite.id,
            metadata={
                "role": role.value,
                "society_id": str(society.id),
                "department_id": str(department.id) if department else None,
                "is_link_invite": kind == InviteKind.LINK,
                "email": invite.target_email,
            },
        )

        if kind == InviteKind.TARGETED:
            await self._send_invite_email(invite, society, department)

        return invite

    async def _send_invite_email(self, invite: Invite, society: Society, department: Optional[Department]) -> None:
        try:
            await email_service.send_invite_email(
                invite.email,
                self.build_invite_url(invite.token),
                invite.role.value,
                society.name,
                department.name if department else None,
            )
        except Exception as e:
            logger.log_error_with_context(e, context="invite-email", invite_id=str(invite.id))

    async def create_member_invite(self, db: AsyncSession, head: User, email: Optional[str] = None) -> Invite:
        """A head invites members to the department they currently lead"""
        membership = await membership_service.require_head(db, head)
        return await self.issue(
            db,
            head,
            membership.society_id,
            Role.MEMBER,
            email=email,
            department_id=membership.department_id,
            audit_action="MEMBER_INVITE_EMAIL_CREATED" if email else "MEMBER_INVITE_LINK_CREATED",
        )

    async def create_head_invite(
        self,
        db: AsyncSession,
        core: User,
        department_id: str,
        email: Optional[str] = None,
    ) -> Invite:
        """A core member invites the head of one of their society's departments"""
        if not department_id:
            raise ValidationError("Department is required", field="department_id")
        membership = await membership_service.require_core(db, core)
        department = await society_service.get_department(db, department_id, membership.society_id)
        return await self.issue(
            db,
            core,
            membership.society_id,
            Role.HEAD,
            email=email,
            department_id=department.id,
            audit_action="HEAD_INVITE_EMAIL_CREATED" if email else "HEAD_INVITE_LINK_CREATED",
        )

    # ==================== Lookup ====================

    async def lookup(self, db: AsyncSession, token: str) -> Dict[str, Any]:
        """Display details of a redeemable invite before acceptance"""
        invite = await self.get_by_token(db, token)
        if invite is None or invite.used:
            raise InviteNotFoundError()
        if invite.is_expired_at(utcnow()):
            raise InviteExpiredError()

        society = await db.get(Society, invite.society_id)
        department = await db.get(Department, invite.department_id) if invite.department_id else None

        return {
            "role": invite.role.value,
            "society_name": society.name if society else None,
            "department_name": department.name if department else None,
            "email": invite.target_email,
            "is_link_invite": invite.is_link_invite,
            "expires_at": invite.expires_at,
        }

    # ==================== Redemption ====================

    async def load_redeemable(self, db: AsyncSession, token: str, email: str) -> Invite:
        """Fetch an invite and check it can be redeemed by `email` right now"""
        invite = await self.get_by_token(db, token)
        if invite is None or invite.used:
            raise InviteAlreadyUsedError()
        if invite.is_expired_at(utcnow()):
            raise InviteExpiredError()
        if not invite.is_link_invite and normalize_email(invite.email) != normalize_email(email):
            logger.log_auth_event("invite_redeem", False, normalize_email(email), "email mismatch")
            raise EmailMismatchError()
        return invite

    async def redeem_loaded(self, db: AsyncSession, invite: Invite, person: User) -> Membership:
        """
        Claim the invite and move the person's membership, without committing.

        The caller holds `membership_service.person_lock(person.id)` and commits.
        """
        now = utcnow()
        result = await db.execute(
            update(Invite)
            .where(Invite.id == invite.id, Invite.used == False)  # noqa: E712
            .values(used=True, used_at=now, used_by_id=str(person.id))
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            await db.rollback()
            raise InviteAlreadyUsedError()

        # PRESIDENT is a display role on the society; the seat itself is CORE
        membership_role = Role.CORE if invite.role == Role.PRESIDENT else invite.role
        membership = await membership_service.apply_transition(
            db, person.id, invite.society_id, invite.department_id, membership_role,
        )

        if invite.role == Role.PRESIDENT:
            society = await db.get(Society, invite.society_id)
            society.president_name = person.full_name

        return membership

    async def record_redemption(self, db: AsyncSession, invite: Invite, person: User, membership: Membership) -> None:
        logger.log_membership_event(
            "invite_redeemed", str(person.id), str(invite.society_id), membership.role.value,
            invite_id=str(invite.id),
        )
        await audit_service.record(
            db,
            "INVITE_ACCEPTED",
            actor=person,
            target_model="Invite",
            target_id=invite.id,
            metadata={
                "membership_id": str(membership.id),
                "society_id": str(invite.society_id),
                "department_id": str(invite.department_id) if invite.department_id else None,
                "role": invite.role.value,
            },
        )

    async def redeem(self, db: AsyncSession, token: str, person: User) -> Membership:
        """Redeem an invite as an already registered person"""
        async with membership_service.person_lock(person.id):
            invite = await self.load_redeemable(db, token, person.email)
            try:
                membership = await self.redeem_loaded(db, invite, person)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await self.record_redemption(db, invite, person, membership)
        return membership


# Singleton instance
invite_service = InviteService()
