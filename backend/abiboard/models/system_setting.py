from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON

from abiboard.core.database import Base
from abiboard.core.types import GUID, generate_uuid, utcnow


class SystemSetting(Base):
    """Global settings edited by admins"""
    __tablename__ = "system_settings"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Setting key (unique identifier), e.g. "submission.deadline"
    key = Column(String(100), unique=True, nullable=False, index=True)

    # Setting value (stored as JSON for flexibility)
    value = Column(JSON, nullable=True)

    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)

    updated_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<SystemSetting {self.key}>"
