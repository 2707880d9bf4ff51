"""
Student Activity Model
Feed of what students did, shown on the dashboard
"""

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Enum as SQLEnum
import enum

from abiboard.core.database import Base
from abiboard.core.types import GUID, generate_uuid, utcnow


class ActivityAction(str, enum.Enum):
    SUBMIT = "SUBMIT"
    RETRACT = "RETRACT"


class StudentActivity(Base):
    """Append-only activity row"""
    __tablename__ = "student_activities"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    action = Column(SQLEnum(ActivityAction), nullable=False)
    entity = Column(String(50), nullable=False)
    count = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<StudentActivity {self.user_id} {self.action} {self.entity}>"
