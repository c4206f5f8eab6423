import logging
import warnings
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courseflow.config import settings
from courseflow.core.errors import register_error_handlers
from courseflow.core.middleware import AccessLogMiddleware, RequestIDMiddleware
from courseflow.routers import admin, auth, certificate, course, profile, progress
from courseflow.services.cache import TTLCache

# Validate session secret in production
if settings.is_production and settings.secret_key == "change-me-in-production":
    raise RuntimeError(
        "SECRET_KEY must be set to a secure random value in production. "
        "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
    )

if not settings.is_production and settings.secret_key == "change-me-in-production":
    warnings.warn("SECRET_KEY is using default value. Set it for production.", stacklevel=1)

logger = logging.getLogger("courseflow")


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create tables on startup; on shutdown drop cached reads and close the pool."""
    from courseflow.dependencies import engine
    from courseflow.models.base import Base
    import courseflow.models  # noqa: F401  (populates Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created")
    yield
    application.state.cache.clear_all()
    await engine.dispose()


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # One cache per process, owned by the app. Handlers get it through
    # the get_cache dependency.
    application.state.cache = TTLCache()

    # Middleware: last added = outermost. CORS outermost so every response
    # carries CORS headers.
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(AccessLogMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )

    register_error_handlers(application)

    application.include_router(auth.router)
    application.include_router(profile.router)
    application.include_router(course.router)
    application.include_router(progress.router)
    application.include_router(certificate.router)
    application.include_router(admin.router)

    @application.get("/health")
    async def health_check():
        return {"status": "ok", "app": settings.app_name, "version": "0.1.0"}

    return application


app = create_app()
