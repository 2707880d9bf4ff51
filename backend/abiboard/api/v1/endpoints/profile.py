"""
Student profile ("Steckbrief") endpoints.

The draft save accepts JSON (``{key: value}``) or multipart form data
when images are uploaded. Keys that are not sent stay unchanged.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.config import settings
from abiboard.core.database import get_db
from abiboard.core.exceptions import ValidationError
from abiboard.core.rate_limiter import limiter
from abiboard.models.profile import Profile
from abiboard.models.user import User
from abiboard.modules.auth.dependencies import get_current_student
from abiboard.schemas.profile import ProfileResponse, SubmissionResponse
from abiboard.schemas.profile_field import ProfileFieldResponse
from abiboard.services.deadline import SubmissionWindow, get_submission_window
from abiboard.services.field_registry import field_registry_service
from abiboard.services.profile_service import (
    INVALID_PAYLOAD_MESSAGE,
    draft_update_from_form,
    draft_update_from_json,
    profile_service,
    render_values,
)

router = APIRouter()

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def build_profile_response(db: AsyncSession, profile: Profile, window: SubmissionWindow) -> ProfileResponse:
    fields = await field_registry_service.list_fields(db, active_only=True)
    values = await profile_service.load_values(db, profile, fields)

    return ProfileResponse(
        id=profile.id,
        status=profile.status,
        submitted_at=profile.submitted_at,
        values=render_values(fields, values),
        fields=[ProfileFieldResponse.model_validate(f) for f in fields],
        deadline=window.deadline,
        deadline_passed=window.is_deadline_passed(),
        updated_at=profile.updated_at,
    )


@router.get("", response_model=ProfileResponse)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
    window: SubmissionWindow = Depends(get_submission_window)
):
    """Load the own profile; it is created on first access"""
    profile = await profile_service.get_or_create_profile(db, current_user)
    return await build_profile_response(db, profile, window)


@router.patch("", response_model=ProfileResponse)
@limiter.limit(settings.PROFILE_SAVE_RATE_LIMIT)
async def save_profile_draft(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
    window: SubmissionWindow = Depends(get_submission_window)
):
    """Save a draft. Required fields are not enforced here."""
    profile = await profile_service.prepare_draft_save(db, current_user, window)

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        update = await draft_update_from_form(await request.form())
    else:
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError(INVALID_PAYLOAD_MESSAGE)
        update = draft_update_from_json(body)

    await profile_service.save_draft(db, current_user, profile, update, window)
    return await build_profile_response(db, profile, window)


@router.post("/submit", response_model=SubmissionResponse)
async def submit_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
    window: SubmissionWindow = Depends(get_submission_window)
):
    """Submit the profile; fails listing every missing required field"""
    profile = await profile_service.submit(db, current_user, window)
    return SubmissionResponse(
        message="Steckbrief erfolgreich abgegeben.",
        status=profile.status,
        submitted_at=profile.submitted_at,
    )


@router.post("/retract", response_model=SubmissionResponse)
async def retract_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
    window: SubmissionWindow = Depends(get_submission_window)
):
    """Withdraw the submission so the profile can be edited again"""
    profile = await profile_service.retract(db, current_user, window)
    return SubmissionResponse(
        message="Abgabe zurückgezogen. Du kannst deinen Steckbrief jetzt wieder bearbeiten.",
        status=profile.status,
        submitted_at=profile.submitted_at,
    )
