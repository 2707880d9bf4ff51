"""Custom SQLAlchemy column types and helpers shared by the models"""
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from sqlalchemy import JSON, String, TypeDecorator


def generate_uuid() -> str:
    """Generate a UUID string"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    """UUIDs stored as VARCHAR(36) on every backend"""
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


class StringList(TypeDecorator):
    """
    Ordered list of strings stored as JSON.

    NULL and a missing list both load as ``[]`` so callers never have to
    distinguish them.
    """
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: Optional[List[str]], dialect):
        if value is None:
            return []
        return [str(item) for item in value]

    def process_result_value(self, value, dialect) -> List[str]:
        if not value:
            return []
        return list(value)
