"""
Admin settings endpoints: the submission deadline.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.database import get_db
from abiboard.models.user import User
from abiboard.modules.auth.dependencies import get_current_admin
from abiboard.schemas.settings import DeadlineResponse, DeadlineUpdate
from abiboard.services.deadline import (
    SubmissionWindow,
    get_deadline_setting,
    parse_deadline,
    set_deadline,
)

router = APIRouter()


def _deadline_response(setting) -> DeadlineResponse:
    deadline = parse_deadline(setting.value) if setting else None
    return DeadlineResponse(
        deadline=deadline,
        deadline_passed=SubmissionWindow(deadline=deadline).is_deadline_passed(),
        updated_at=setting.updated_at if setting else None,
    )


@router.get("/deadline", response_model=DeadlineResponse)
async def get_submission_deadline(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    return _deadline_response(await get_deadline_setting(db))


@router.patch("/deadline", response_model=DeadlineResponse)
async def update_submission_deadline(
    deadline_data: DeadlineUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Set the deadline; null removes it"""
    setting = await set_deadline(db, deadline_data.deadline, updated_by=current_admin.id)
    return _deadline_response(setting)
