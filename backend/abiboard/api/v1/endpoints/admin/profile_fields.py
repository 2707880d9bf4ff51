"""
Admin management of profile field definitions.

Fields are never deleted; deactivate them with ``active: false`` instead.
Their stored values are kept.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.database import get_db
from abiboard.core.exceptions import MethodNotAllowedError
from abiboard.models.user import User
from abiboard.modules.auth.dependencies import get_current_admin
from abiboard.schemas.profile_field import (
    ProfileFieldCreate,
    ProfileFieldListResponse,
    ProfileFieldReorder,
    ProfileFieldResponse,
    ProfileFieldUpdate,
)
from abiboard.services.field_registry import field_registry_service

router = APIRouter()

DELETE_NOT_ALLOWED_MESSAGE = "Felder können nicht gelöscht werden. Verwende stattdessen die Deaktivierung."


def _list_response(fields) -> ProfileFieldListResponse:
    return ProfileFieldListResponse(
        fields=[ProfileFieldResponse.model_validate(f) for f in fields],
        total=len(fields)
    )


@router.get("", response_model=ProfileFieldListResponse)
async def list_fields(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """All fields including inactive ones, in display order"""
    return _list_response(await field_registry_service.list_fields(db))


@router.post("", response_model=ProfileFieldResponse, status_code=status.HTTP_201_CREATED)
async def create_field(
    field_data: ProfileFieldCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    field = await field_registry_service.create_field(db, field_data)
    return ProfileFieldResponse.model_validate(field)


# Declared before /{field_id} so "reorder" is not taken for an id
@router.patch("/reorder", response_model=ProfileFieldListResponse)
async def reorder_fields(
    reorder_data: ProfileFieldReorder,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Apply new positions for several fields at once"""
    fields = await field_registry_service.reorder_fields(db, reorder_data.field_orders)
    return _list_response(fields)


@router.get("/{field_id}", response_model=ProfileFieldResponse)
async def get_field(
    field_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    field = await field_registry_service.get_field(db, field_id)
    return ProfileFieldResponse.model_validate(field)


@router.patch("/{field_id}", response_model=ProfileFieldResponse)
async def update_field(
    field_id: str,
    field_data: ProfileFieldUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Update mutable attributes; key and type cannot be changed"""
    field = await field_registry_service.update_field(db, field_id, field_data)
    return ProfileFieldResponse.model_validate(field)


@router.delete("/{field_id}")
async def delete_field(field_id: str):
    """Always rejected"""
    raise MethodNotAllowedError(DELETE_NOT_ALLOWED_MESSAGE)
