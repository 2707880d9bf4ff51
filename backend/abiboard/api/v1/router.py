from fastapi import APIRouter
from abiboard.api.v1.endpoints import profile, profile_fields
from abiboard.api.v1.endpoints.admin import admin_router

api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "abiboard-backend"}


api_router.include_router(profile_fields.router, prefix="/profile-fields", tags=["Profile Fields"])
api_router.include_router(profile.router, prefix="/profile", tags=["Profile"])

# Admin routes
api_router.include_router(admin_router)
