"""
Admin API endpoints for AbiBoard.
All endpoints require the ADMIN role.
"""
from fastapi import APIRouter

from abiboard.api.v1.endpoints.admin import profile_fields, settings, profiles, export

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

# Include all admin sub-routers
admin_router.include_router(profile_fields.router, prefix="/profile-fields", tags=["Admin Profile Fields"])
admin_router.include_router(settings.router, prefix="/settings", tags=["Admin Settings"])
admin_router.include_router(profiles.router, prefix="/profiles", tags=["Admin Profiles"])
admin_router.include_router(export.router, prefix="/export", tags=["Admin Export"])
