"""Custom SQLAlchemy types and time helpers shared by the models"""
from datetime import datetime, timezone
from sqlalchemy import TypeDecorator, String
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    """Stores UUIDs as VARCHAR(36) on every backend"""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


def to_naive_utc(value: datetime) -> datetime:
    """Normalise an incoming (possibly tz-aware) datetime to naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
