"""
Audit trail writer.

Entries are written after the operation they describe has committed, on a
short-lived session of their own, so a failed audit write can neither roll
back nor expire anything in the caller's session. Failures are logged and
never reach the caller.
"""

from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging_config import logger
from app.models.audit_log import AuditLog
from app.models.user import User


class AuditService:

    async def record(
        self,
        db: AsyncSession,
        action: str,
        actor: Optional[User] = None,
        target_model: Optional[str] = None,
        target_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Write one audit entry; returns False when the write failed"""
        try:
            entry = AuditLog(
                actor_id=str(actor.id) if actor else None,
                actor_role=actor.role.value if actor else None,
                action=action,
                target_model=target_model,
                target_id=str(target_id) if target_id else None,
                details=metadata or {},
            )
            async with AsyncSession(db.bind, expire_on_commit=False) as audit_db:
                audit_db.add(entry)
                await audit_db.commit()
            return True
        except Exception as e:
            logger.log_error_with_context(e, context=f"audit:{action}", target_id=str(target_id))
            return False


# Singleton instance
audit_service = AuditService()
