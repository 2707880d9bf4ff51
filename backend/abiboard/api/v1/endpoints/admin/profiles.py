"""
Admin overview of profile submissions.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from abiboard.core.database import get_db
from abiboard.models import FieldValue, Profile, ProfileStatus, User, UserRole
from abiboard.modules.auth.dependencies import get_current_admin
from abiboard.schemas.profile import ProfileOverviewItem, ProfileOverviewResponse
from abiboard.services.field_registry import field_registry_service
from abiboard.services.field_values import read_payload
from abiboard.services.required_fields import check_required_fields

router = APIRouter()


@router.get("", response_model=ProfileOverviewResponse)
async def list_profiles(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Every active student with status and missing required fields"""
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.STUDENT, User.is_active.is_(True))
        .order_by(User.last_name, User.first_name)
    )
    students = result.scalars().all()

    profiles_result = await db.execute(select(Profile))
    profiles = {p.user_id: p for p in profiles_result.scalars().all()}

    fields = await field_registry_service.list_fields(db, active_only=True)

    # All stored values in one query, keyed by (profile, field)
    values_result = await db.execute(select(FieldValue))
    stored = {(row.profile_id, row.field_id): row for row in values_result.scalars().all()}

    items = []
    for student in students:
        profile = profiles.get(student.id)
        item = ProfileOverviewItem(
            user_id=student.id,
            first_name=student.first_name,
            last_name=student.last_name,
            email=student.email,
        )
        if profile:
            values = {f.key: read_payload(f, stored.get((profile.id, f.id))) for f in fields}
            item.profile_id = profile.id
            item.status = profile.status
            item.submitted_at = profile.submitted_at
            item.updated_at = profile.updated_at
            item.missing_fields = check_required_fields(fields, values)
        else:
            item.missing_fields = check_required_fields(fields, {})
        items.append(item)

    return ProfileOverviewResponse(
        profiles=items,
        total=len(items),
        submitted=sum(1 for i in items if i.status == ProfileStatus.SUBMITTED),
        drafts=sum(1 for i in items if i.status == ProfileStatus.DRAFT),
        not_started=sum(1 for i in items if i.status is None),
    )
