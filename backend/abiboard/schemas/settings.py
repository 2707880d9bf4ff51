from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class DeadlineResponse(BaseModel):
    """Current submission deadline"""
    deadline: Optional[datetime] = None
    deadline_passed: bool
    updated_at: Optional[datetime] = None


class DeadlineUpdate(BaseModel):
    """Set or clear (null) the submission deadline"""
    deadline: Optional[datetime] = Field(..., description="ISO-8601 timestamp, null removes the deadline")
