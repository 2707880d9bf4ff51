from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from abiboard.core.database import Base
from abiboard.core.types import GUID, generate_uuid, utcnow


class FieldType(str, enum.Enum):
    """Kinds of profile fields an admin can configure"""
    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    SINGLE_IMAGE = "SINGLE_IMAGE"
    MULTI_IMAGE = "MULTI_IMAGE"


TEXT_FIELD_TYPES = (FieldType.TEXT, FieldType.TEXTAREA)
IMAGE_FIELD_TYPES = (FieldType.SINGLE_IMAGE, FieldType.MULTI_IMAGE)

DEFAULT_MAX_FILES = 3

# Attributes an admin may change after creation; key and type are fixed
MUTABLE_FIELD_ATTRIBUTES = (
    "label",
    "placeholder",
    "max_length",
    "max_files",
    "rows",
    "required",
    "order",
    "active",
)


class ProfileField(Base):
    """Admin-configured field of the student profile form"""
    __tablename__ = "profile_fields"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    key = Column(String(50), unique=True, index=True, nullable=False)
    type = Column(SQLEnum(FieldType), nullable=False)

    label = Column(String(100), nullable=False)
    placeholder = Column(String(200), nullable=True)
    max_length = Column(Integer, nullable=True)  # TEXT / TEXTAREA
    max_files = Column(Integer, nullable=True)  # MULTI_IMAGE
    rows = Column(Integer, nullable=True)  # TEXTAREA

    required = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, default=0, nullable=False, index=True)
    # Soft delete only; value rows of inactive fields are kept
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    values = relationship("FieldValue", back_populates="field")

    @property
    def effective_max_files(self) -> int:
        return self.max_files or DEFAULT_MAX_FILES

    def __repr__(self):
        return f"<ProfileField {self.key} ({self.type})>"
