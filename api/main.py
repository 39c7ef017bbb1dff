import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.features.chat.generator import ReplyGenerator
from api.features.chat.exceptions import ProviderRateLimitedError
from api.shared.dtos import ErrorResponse, HealthCheckResponse
from api.shared.entities.registry import BaseEntity
from api.shared.exceptions import SupportChatException
from core.logging import configure_logging
from core.settings import SETTINGS, Settings
from di.container import ApplicationContainer as DependencyContainer
from infra.resources import DatabaseResource

logger = logging.getLogger("support")


class CustomFastAPI(FastAPI):
    container: DependencyContainer
    settings: Settings


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        await db_resource.ping()
        if _app.settings.DATABASE.CREATE_SCHEMA:
            await db_resource.create_schema(BaseEntity.metadata)
        logger.info(
            f"Database connection established in {time.time() - db_start:.2f}s"
        )

        # Fail fast on a missing knowledge file or provider credential
        _app.container.infrastructure.knowledge()
        _app.container.services.reply_generator()
        _app.container.services.chat_orchestrator()

        logger.info(
            f"Application startup completed in {time.time() - start_time:.2f}s"
        )
    except Exception as e:
        logger.exception(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        db_resource = _app.container.infrastructure.database()
        if db_resource:
            await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def _error_payload(
    request: Request,
    message: str,
    error_code: str,
    details: Optional[dict] = None,
) -> dict:
    include_details = request.app.settings.APP.ENVIRONMENT != "prod"
    body = ErrorResponse(
        error=message,
        error_code=error_code,
        details=jsonable_encoder(details) if include_details and details else None,
    )
    return body.model_dump(by_alias=True, exclude_none=True, mode="json")


async def chat_exception_handler(request: Request, exc: SupportChatException):
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}"
    )
    headers = None
    if isinstance(exc, ProviderRateLimitedError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.http_status,
        content=_error_payload(request, exc.public_message, exc.error_code, exc.details),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    bad_session_path = any(
        tuple(err.get("loc", ()))[:2] == ("path", "session_id") for err in exc.errors()
    )
    message = "Invalid session ID format" if bad_session_path else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=_error_payload(request, message, "VALIDATION_FAILED", {"errors": errors}),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"error": "Route not found", "path": request.url.path},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(request, str(exc.detail), f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=_error_payload(
            request,
            "An unexpected error occurred. Please try again later.",
            "INTERNAL_ERROR",
            {"exception": type(exc).__name__},
        ),
    )


@inject
async def ready(
    request: Request,
    db: DatabaseResource = Depends(
        Provide[DependencyContainer.infrastructure.database]
    ),
    generator: ReplyGenerator = Depends(
        Provide[DependencyContainer.services.reply_generator]
    ),
):
    dependencies = {}
    try:
        dependencies["database"] = "ok" if await db.ping() else "down"
    except Exception as e:
        logger.warning(f"Database readiness check failed: {e}")
        dependencies["database"] = "down"
    dependencies["reply_provider"] = "ok" if await generator.health_check() else "down"
    status = "ok" if all(v == "ok" for v in dependencies.values()) else "degraded"
    return HealthCheckResponse(
        status=status, version=request.app.settings.APP.VERSION, dependencies=dependencies
    )


async def root(request: Request):
    app_settings = request.app.settings.APP
    return {
        "name": app_settings.SERVICE_NAME,
        "version": app_settings.VERSION,
        "status": "running",
    }


def create_fastapi_app(
    container: Optional[DependencyContainer] = None,
    settings: Optional[Settings] = None,
) -> CustomFastAPI:
    settings = settings or SETTINGS
    configure_logging(settings.APP)

    _app = CustomFastAPI(
        title=settings.APP.SERVICE_NAME,
        description="Customer support chat backend with persisted conversations",
        version=settings.APP.VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.settings = settings
    _app.container = container or DependencyContainer()
    _app.container.wire(modules=[sys.modules[__name__]])

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.APP.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.features.chat.router import router as chat_router

    _app.include_router(chat_router, prefix="/chat", tags=["Chat"])

    _app.add_api_route("/", root, methods=["GET"])
    _app.add_api_route(
        "/ready", ready, methods=["GET"], response_model=HealthCheckResponse
    )

    _app.add_exception_handler(SupportChatException, chat_exception_handler)
    _app.add_exception_handler(RequestValidationError, validation_exception_handler)
    _app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    _app.add_exception_handler(Exception, general_exception_handler)

    return _app


app = create_fastapi_app()
