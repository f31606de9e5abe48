"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.app.api.http.app_data import ApplicationDependencies
from src.app.api.http.routers.auth import router as auth_router
from src.app.api.http.routers.health import router as health_router
from src.app.api.utils.app_startup import configure_logging
from src.app.core.errors import StorageFailure, ValidationInputError
from src.app.core.services import (
    AuthSessionService,
    DbSessionService,
    ExpiredTokenSweeper,
    IdentityProviderRegistry,
    SessionBridge,
    TokenLedger,
    UserSessionService,
)
from src.app.core.storage import create_session_storage
from src.app.runtime.config.config_data import ConfigData
from src.app.runtime.context import get_config


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, production: bool = False):
        super().__init__(app)
        self._production = production

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        # HSTS only in prod
        if self._production:
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        return response


# --- Request logging middleware ---
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    # Query strings are left out: provider callbacks carry authorization codes
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    start = time.perf_counter()

    # Everything that logs within this block inherits base_ctx
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except HTTPException as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=exc.status_code,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        except RequestValidationError as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=422,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.validation_error")
            return JSONResponse(
                status_code=422,
                content={"detail": exc.errors(), "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


# --- Error mapping ---
async def _validation_input_error(request: Request, exc: ValidationInputError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _storage_failure(request: Request, exc: StorageFailure):
    logger.error(
        "Remember-me storage failure",
        error_type=type(exc).__name__,
        error_message=str(exc),
    )
    return JSONResponse(
        status_code=503, content={"detail": "Remember-me storage unavailable"}
    )


# --- Lifecycle ---
async def build_dependencies(
    config: ConfigData, provider_registry: IdentityProviderRegistry
) -> ApplicationDependencies:
    """Construct the process-wide services. Nothing here touches the database."""
    database_service = DbSessionService(config.database, config.app.environment)
    token_ledger = TokenLedger(database_service, config.remember)
    session_storage = await create_session_storage(config.redis)
    user_session_service = UserSessionService(
        session_storage, config.app.session_max_age
    )
    sweep_interval = (
        config.remember.sweep_interval_seconds if config.remember.enabled else 0
    )

    return ApplicationDependencies(
        config=config,
        database_service=database_service,
        token_ledger=token_ledger,
        token_sweeper=ExpiredTokenSweeper(token_ledger, sweep_interval),
        session_storage=session_storage,
        user_session_service=user_session_service,
        auth_session_service=AuthSessionService(session_storage, config.security),
        session_bridge=SessionBridge(token_ledger, user_session_service),
        provider_registry=provider_registry,
    )


async def startup(app: FastAPI) -> None:
    config: ConfigData = app.state.config
    if app.state.setup_logging:
        configure_logging(config)
    logger.info("Starting up application in {} environment", config.app.environment)

    deps = await build_dependencies(config, app.state.provider_registry)
    app.state.app_dependencies = deps

    if not len(deps.provider_registry):
        logger.warning("No identity providers registered; logins will be refused")

    if config.remember.enabled:
        await deps.token_ledger.initialize()
    else:
        logger.info("Remember-me disabled by configuration")

    deps.token_sweeper.start()


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies = app.state.app_dependencies
    try:
        await app_dependencies.token_sweeper.stop()
        await app_dependencies.auth_session_service.purge_expired()
        await app_dependencies.user_session_service.purge_expired()
    except Exception as e:
        logger.exception("Shutdown cleanup failed", error_type=type(e).__name__)
    finally:
        try:
            await app_dependencies.session_storage.close()
        finally:
            app_dependencies.database_service.dispose()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup(app)
    try:
        yield
    finally:
        await shutdown(app)


def create_app(
    config: ConfigData | None = None,
    provider_registry: IdentityProviderRegistry | None = None,
    setup_logging: bool = True,
) -> FastAPI:
    """Build the gateway application.

    Args:
        config: Configuration to run with; defaults to the active context
        provider_registry: Identity providers offered for login
        setup_logging: Install the Loguru sinks on startup
    """
    config = config or get_config()
    production = config.app.environment == "production"

    app = FastAPI(
        title=config.app.name,
        lifespan=lifespan,
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
    )
    app.state.config = config
    app.state.setup_logging = setup_logging
    app.state.provider_registry = provider_registry or IdentityProviderRegistry()

    app.add_middleware(SecurityHeadersMiddleware, production=production)

    # --- CORS configuration ---
    if production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(ValidationInputError, _validation_input_error)
    app.add_exception_handler(StorageFailure, _storage_failure)

    # --- Router registration ---
    app.include_router(auth_router, prefix="/auth")
    app.include_router(health_router)

    @app.get("/")
    async def index(request: Request) -> dict:
        """Service index listing the login endpoint of each provider."""
        registry: IdentityProviderRegistry = request.app.state.provider_registry
        return {
            "service": config.app.name,
            "remember_me": config.remember.enabled,
            "login": {name: f"/auth/{name}" for name in registry.names()},
            "profile": "/auth/profile",
            "logout": "/auth/logout",
        }

    return app


app = create_app()
