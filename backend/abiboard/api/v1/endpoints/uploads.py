"""Serves stored profile images to signed-in users"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from abiboard.core.exceptions import UploadNotFoundError
from abiboard.models.user import User
from abiboard.modules.auth.dependencies import get_current_user
from abiboard.services.file_upload import REFERENCE_PREFIX, resolve_reference

router = APIRouter()


@router.get("/uploads/{file_path:path}")
async def get_upload(
    file_path: str,
    current_user: User = Depends(get_current_user)
):
    reference = f"{REFERENCE_PREFIX}{file_path}"
    path = resolve_reference(reference)
    if path is None or not path.is_file():
        raise UploadNotFoundError(reference)

    return FileResponse(path=str(path), filename=path.name)
