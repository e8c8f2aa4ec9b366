from datetime import datetime
from sqlalchemy import Column, String, DateTime, Index

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class OTPChallenge(Base):
    """One-time email verification code issued before registration"""
    __tablename__ = "otp_challenges"
    __table_args__ = (
        Index('ix_otp_challenges_email_created', 'email', 'created_at'),
        Index('ix_otp_challenges_expires_at', 'expires_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    # Unique across the whole table, not per email
    code = Column(String(10), unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    def is_expired_at(self, now: datetime) -> bool:
        """Expiry is exclusive: a check at exactly expires_at fails"""
        return now >= self.expires_at

    def __repr__(self):
        return f"<OTPChallenge {self.email}>"
