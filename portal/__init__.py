#portal/__init__.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .core.config import settings
from .core.database import close_db, get_db_context, init_db
from .core.errors import BaseAPIError, DatabaseError, get_error_message
from .core.logging import logger
from .middleware.request_id import RequestIDMiddleware
from .routes import (
    activity_router,
    announcements_router,
    assessments_router,
    attendance_router,
    auth_router,
    calendar_router,
    content_router,
    finance_router,
    forums_router,
    inventory_router,
    knowledge_router,
    lms_router,
    organizations_router,
    parent_router,
    projects_router,
    settings_router,
    teams_router,
    users_router
)
from .services.organization_service import OrganizationService


def _error_response(error: Exception) -> JSONResponse:
    body = get_error_message(error)
    status_code = body.pop("status_code")
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    async with get_db_context() as db:
        service = OrganizationService(db)
        organization = await service.ensure_system_organization()
        await service.ensure_superuser(organization)
    logger.info("Application startup completed")
    yield
    await close_db()
    logger.info("Application shutdown completed")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant API for academy administration, learning and team projects",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(BaseAPIError)
    async def api_error_handler(request: Request, exc: BaseAPIError):
        if exc.status_code >= 500:
            logger.error(
                f"{exc.error_code}: {exc.message}",
                extra={'request_id': getattr(request.state, "request_id", None)}
            )
        return _error_response(exc)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"Database error on {request.method} {request.url.path}: {str(exc)}",
            exc_info=True,
            extra={'request_id': getattr(request.state, "request_id", None)}
        )
        return _error_response(DatabaseError())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {str(exc)}",
            exc_info=True,
            extra={'request_id': getattr(request.state, "request_id", None)}
        )
        return _error_response(exc)

    # Include routers
    app.include_router(auth_router, prefix="/api/v1/auth")
    app.include_router(organizations_router, prefix="/api/v1/organizations")
    app.include_router(users_router, prefix="/api/v1/users")
    app.include_router(settings_router, prefix="/api/v1/settings")
    app.include_router(activity_router, prefix="/api/v1/activity")
    app.include_router(announcements_router, prefix="/api/v1/announcements")
    app.include_router(finance_router, prefix="/api/v1/finance")
    app.include_router(inventory_router, prefix="/api/v1/inventory")
    app.include_router(parent_router, prefix="/api/v1/parent")
    app.include_router(content_router, prefix="/api/v1")
    app.include_router(knowledge_router, prefix="/api/v1/knowledge")
    app.include_router(calendar_router, prefix="/api/v1/calendar")
    app.include_router(lms_router, prefix="/api/v1/lms")
    app.include_router(assessments_router, prefix="/api/v1/lms")
    app.include_router(attendance_router, prefix="/api/v1/lms")
    app.include_router(forums_router, prefix="/api/v1/lms")
    app.include_router(teams_router, prefix="/api/v1/teams")
    app.include_router(projects_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "version": settings.VERSION}

    return app
