from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime

from abiboard.models.profile import ProfileStatus
from abiboard.schemas.profile_field import ProfileFieldResponse


class ProfileResponse(BaseModel):
    """Profile of the current student with values keyed by field key"""
    id: str
    status: ProfileStatus
    submitted_at: Optional[datetime] = None
    values: Dict[str, Any]
    fields: List[ProfileFieldResponse]
    deadline: Optional[datetime] = None
    deadline_passed: bool = False
    updated_at: Optional[datetime] = None


class SubmissionResponse(BaseModel):
    """Result of submit / retract"""
    success: bool = True
    message: str
    status: ProfileStatus
    submitted_at: Optional[datetime] = None


# ==================== Admin Overview Schemas ====================

class ProfileOverviewItem(BaseModel):
    user_id: str
    first_name: str
    last_name: str
    email: str
    profile_id: Optional[str] = None
    status: Optional[ProfileStatus] = None  # None = profile not started
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    missing_fields: List[str] = []


class ProfileOverviewResponse(BaseModel):
    profiles: List[ProfileOverviewItem]
    total: int
    submitted: int
    drafts: int
    not_started: int
