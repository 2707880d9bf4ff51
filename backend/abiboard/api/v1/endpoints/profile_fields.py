"""Field definitions for rendering the profile form"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.database import get_db
from abiboard.models.user import User
from abiboard.modules.auth.dependencies import get_current_user
from abiboard.schemas.profile_field import ProfileFieldListResponse, ProfileFieldResponse
from abiboard.services.field_registry import field_registry_service

router = APIRouter()


@router.get("", response_model=ProfileFieldListResponse)
async def list_active_fields(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active fields in display order"""
    fields = await field_registry_service.list_fields(db, active_only=True)
    return ProfileFieldListResponse(
        fields=[ProfileFieldResponse.model_validate(f) for f in fields],
        total=len(fields)
    )
