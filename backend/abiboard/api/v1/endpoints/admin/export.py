"""
Admin export of profiles for print production.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.database import get_db
from abiboard.core.exceptions import NotFoundError
from abiboard.models.user import User
from abiboard.modules.auth.dependencies import get_current_admin
from abiboard.services.export import TSV_FILENAME, ZIP_FILENAME, profile_export_service

router = APIRouter()


@router.get("/profiles")
async def export_profiles_tsv(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """TSV for InDesign data merge"""
    tsv = await profile_export_service.export_tsv(db)

    return StreamingResponse(
        iter([tsv.encode("utf-8")]),
        media_type="text/tab-separated-values; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{TSV_FILENAME}"'}
    )


@router.get("/profiles/images")
async def export_profile_images(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """ZIP with the images referenced by the TSV export"""
    fields = await profile_export_service.image_fields(db)
    if not fields:
        raise NotFoundError("Keine Bildfelder konfiguriert.", "ImageField")

    data = await profile_export_service.export_images_zip(db, fields)

    return StreamingResponse(
        iter([data]),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ZIP_FILENAME}"'}
    )
