from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from abiboard.core.config import settings
from abiboard.core.database import AsyncSessionLocal, close_db, init_db
from abiboard.core.exceptions import AbiBoardError, ValidationError, error_response
from abiboard.core.logging_config import logger
from abiboard.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from abiboard.core.rate_limiter import limiter, rate_limit_exceeded_handler
from abiboard.api.v1.router import api_router
from abiboard.api.v1.endpoints import uploads
from abiboard.services.field_registry import field_registry_service

GENERIC_ERROR_MESSAGE = "Ein Fehler ist aufgetreten."
PLACEHOLDER_SECRETS = {"", "CHANGE_ME", "changeme", "secret"}


async def validate_critical_config():
    """Refuse to start without a database or with placeholder secrets"""
    problems = []
    if not settings.DATABASE_URL:
        problems.append("DATABASE_URL missing")
    for name in ("SECRET_KEY", "JWT_SECRET_KEY"):
        if getattr(settings, name) in PLACEHOLDER_SECRETS:
            problems.append(f"{name} missing or placeholder")

    for problem in problems:
        logger.critical(f"[Startup] {problem}")
    if problems:
        raise RuntimeError("Invalid configuration: " + "; ".join(problems))


async def ensure_default_fields():
    """Seed the field registry and copy legacy profile columns"""
    if not settings.SEED_DEFAULT_FIELDS:
        logger.info("[Startup] Default field seeding disabled")
        return

    try:
        async with AsyncSessionLocal() as session:
            await field_registry_service.seed_default_fields(session)
            await field_registry_service.migrate_legacy_values(session)
    except Exception as e:
        logger.error(f"[Startup] Failed to prepare profile fields: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[Startup] {settings.APP_NAME} ({settings.ENVIRONMENT}), API {settings.API_VERSION}")

    await validate_critical_config()

    # Tables are created from the models; there are no migrations
    await init_db()
    await ensure_default_fields()
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    logger.info(f"[Startup] Ready, uploads in {settings.UPLOAD_DIR.resolve()}")

    yield

    logger.info("[Shutdown] Closing database connections")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Yearbook profiles (Steckbriefe) with admin-configurable fields",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# The last middleware added runs first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(AbiBoardError)
async def abiboard_exception_handler(request: Request, exc: AbiBoardError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} ({exc.message})")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first invalid input like any other validation error"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location) or None

    ctx_error = (first.get("ctx") or {}).get("error")
    if ctx_error is not None:
        message = str(ctx_error)
    elif field:
        message = f"{field}: {first.get('msg', 'Ungültiger Wert')}"
    else:
        message = "Ungültige Anfrage."

    error = ValidationError(message, field=field)
    return JSONResponse(status_code=error.status_code, content=error_response(error))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = AbiBoardError(str(exc.detail), code=f"HTTP_{exc.status_code}")
    return JSONResponse(status_code=exc.status_code, content=error_response(error), headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    error = AbiBoardError(
        str(exc) if settings.DEBUG else GENERIC_ERROR_MESSAGE,
        code="INTERNAL_ERROR"
    )
    return JSONResponse(status_code=500, content=error_response(error))


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "environment": settings.ENVIRONMENT}


app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")

# Stored references are absolute paths (/uploads/...), so files are served at the root
app.include_router(uploads.router, tags=["Uploads"])


def run():
    import uvicorn
    uvicorn.run(
        "abiboard.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
