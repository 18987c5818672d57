"""
Bounce

FastAPI application factory and entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bounce.api.middleware import PreflightMiddleware, RequestIdMiddleware
from bounce.api.routes import router as api_router
from bounce.config import Settings, get_settings
from bounce.database import Database
from bounce.errors import BounceError, InternalError
from bounce.kernel.data_source import SqlDataSource
from bounce.kernel.identity import IdentityService, PasswordHasher
from bounce.kernel.paths import HEALTH_PATH
from bounce.kernel.permissions import GovernanceService, PermissionResolver
from bounce.logging_config import configure_logging, get_logger
from bounce.schemas.common import ErrorResponse, HealthResponse

logger = get_logger(__name__)

CORS_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE"]
CORS_REQUEST_HEADERS = ["Accept", "Accept-Language", "Content-Language", "Content-Type", "Authorization", "Link"]
CORS_RESPONSE_HEADERS = ["Link", "Location"]


def _error_response(request: Request, status_code: int, detail: str, headers: Optional[dict] = None) -> JSONResponse:
    req_id = getattr(request.state, "request_id", None) if status_code >= 500 else None
    body = ErrorResponse(detail=detail, request_id=req_id)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(BounceError)
    async def bounce_error_handler(request: Request, exc: BounceError):
        """Map classified errors to responses; only internal ones are logged."""
        if isinstance(exc, InternalError):
            logger.error(
                "Internal error: %s",
                exc.detail,
                exc_info=exc.__cause__ or exc,
                extra={"path": request.url.path, "method": request.method},
            )
            detail = exc.detail if settings.debug else InternalError.default_detail
            return _error_response(request, exc.status_code, detail)
        return _error_response(request, exc.status_code, exc.detail, exc.headers())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Routing errors (no match, wrong method) in the same body shape."""
        return _error_response(request, exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        detail = str(exc) if settings.debug else InternalError.default_detail
        return _error_response(request, 500, detail)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The database, data source and services are constructed here, once, and
    reach the routes through ``app.state``.
    """
    settings = settings or get_settings()

    database = Database(settings)
    data_source = SqlDataSource(database.session_maker)
    identity_service = IdentityService(
        data_source,
        PasswordHasher(rounds=settings.password_hash_rounds),
    )
    governance = GovernanceService(
        PermissionResolver(
            data_source,
            default_record=settings.database_permissions,
            max_depth=settings.max_inheritance_depth,
        ),
        realm=settings.auth_realm,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        configure_logging(
            log_level=settings.log_level,
            environment=settings.environment,
            debug=settings.debug,
        )
        logger.info("Starting %s v%s", settings.project_name, settings.version)
        await database.create_all()
        logger.info("Database initialized")

        yield

        logger.info("Shutting down...")
        await database.dispose()

    app = FastAPI(
        title=settings.project_name,
        description="Governed hypermedia document store.",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/.well-known/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/.well-known/openapi.json" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.data_source = data_source
    app.state.identity_service = identity_service
    app.state.governance = governance

    # add_middleware stacks innermost-first: Preflight ends up outermost
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_REQUEST_HEADERS,
        expose_headers=CORS_RESPONSE_HEADERS,
    )
    app.add_middleware(PreflightMiddleware)

    _install_exception_handlers(app, settings)

    @app.get(HEALTH_PATH, response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Check application health."""
        return HealthResponse(status="ok", version=settings.version)

    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "bounce.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
