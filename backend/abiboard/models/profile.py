from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from abiboard.core.database import Base
from abiboard.core.types import GUID, generate_uuid, utcnow


class ProfileStatus(str, enum.Enum):
    """Submission status of a profile"""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class Profile(Base):
    """Yearbook profile ("Steckbrief") of one student"""
    __tablename__ = "profiles"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)

    status = Column(SQLEnum(ProfileStatus), default=ProfileStatus.DRAFT, nullable=False, index=True)
    submitted_at = Column(DateTime, nullable=True)

    # Legacy scalar columns, copied into field values at startup
    image_url = Column(String(500), nullable=True)
    quote = Column(Text, nullable=True)
    plans_after = Column(Text, nullable=True)
    memory = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="profile")
    values = relationship("FieldValue", back_populates="profile", cascade="all, delete-orphan")

    @property
    def is_editable(self) -> bool:
        return self.status == ProfileStatus.DRAFT

    def __repr__(self):
        return f"<Profile {self.user_id} ({self.status})>"
