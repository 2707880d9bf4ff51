from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from abiboard.core.database import Base
from abiboard.core.types import GUID, StringList, generate_uuid, utcnow


class FieldValue(Base):
    """
    Stored value of one profile field.

    Exactly one of the value columns is meaningful, selected by the type of
    the referenced field. Read and write it through
    ``abiboard.services.field_values`` instead of touching the columns.
    """
    __tablename__ = "profile_field_values"
    __table_args__ = (
        UniqueConstraint("profile_id", "field_id", name="uq_field_value_profile_field"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    profile_id = Column(GUID, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    field_id = Column(GUID, ForeignKey("profile_fields.id", ondelete="CASCADE"), nullable=False, index=True)

    text_value = Column(Text, nullable=True)
    image_value = Column(String(500), nullable=True)
    images_value = Column(StringList, nullable=True, default=list)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    profile = relationship("Profile", back_populates="values")
    field = relationship("ProfileField", back_populates="values")

    def __repr__(self):
        return f"<FieldValue {self.profile_id}/{self.field_id}>"
