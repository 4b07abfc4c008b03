from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from pawprint.log import setup_logging
from pawprint.server.db.engine import create_engine, create_session_factory
from pawprint.server.managers.alerts import AlertDispatcher, AlertService
from pawprint.server.models.enums import StoreBackend
from pawprint.server.routers.dashboard import router as dashboard_router
from pawprint.server.routers.invites import router as invites_router
from pawprint.server.routers.report import router as report_router
from pawprint.server.routers.status import router as status_router
from pawprint.server.routers.users import router as users_router
from pawprint.server.routers.workspaces import router as workspaces_router
from pawprint.server.settings import ServerSettings, get_settings
from pawprint.server.store.base import MonitorStore
from pawprint.server.store.memory import MemoryMonitorStore
from pawprint.server.store.sql import SqlMonitorStore


def _create_memory_store(settings: ServerSettings) -> MonitorStore:
    return MemoryMonitorStore(
        retention=timedelta(hours=settings.memory_retention_hours),
        max_readings=settings.memory_max_readings,
    )


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        # -- Startup -----------------------------------------------------------
        setup_logging(settings.log_level)
        logger.info("pawprint API starting (host={}, port={})", settings.host, settings.port)

        # -- Initialise state fields (always present, possibly None) ------------
        _app.state.db_engine = None
        _app.state.store = None
        _app.state.alert_service = None

        # -- Store -------------------------------------------------------------
        backend = settings.resolve_store_backend()
        if backend == StoreBackend.SQL:
            if settings.database_url:
                engine = create_engine(settings.database_url)
                _app.state.db_engine = engine
                _app.state.store = SqlMonitorStore(create_session_factory(engine))
                logger.info("Store: PostgreSQL (pool_size=5, max_overflow=10)")
            else:
                logger.error("PAWPRINT_STORE=sql but PAWPRINT_DATABASE_URL is not set -- store disabled")
        else:
            _app.state.store = _create_memory_store(settings)
            logger.warning(
                "Store: in-memory (retention={}h, max {} readings per workspace) -- data is lost on restart",
                settings.memory_retention_hours,
                settings.memory_max_readings,
            )

        # -- Alerting ----------------------------------------------------------
        http_client = httpx.AsyncClient(timeout=settings.webhook_timeout)
        if _app.state.store is not None:
            dispatcher = AlertDispatcher(http_client, timeout=settings.webhook_timeout)
            _app.state.alert_service = AlertService(_app.state.store, dispatcher)

        if not settings.auth_token:
            logger.warning("PAWPRINT_AUTH_TOKEN not set -- user endpoints will reject every request")

        yield

        # -- Shutdown ----------------------------------------------------------
        logger.info("pawprint API shutting down")
        await http_client.aclose()

        # Dispose DB engine (closes all pooled connections).
        if _app.state.db_engine is not None:
            await _app.state.db_engine.dispose()
            logger.info("PostgreSQL: disposed")

    app = FastAPI(title="pawprint", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error envelope: every client-facing error carries an ``error`` field --

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        detail = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
        return JSONResponse(
            {"error": "Invalid payload", "detail": detail},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # -- API router -- all backend endpoints live under /v1 ---------------------
    api = APIRouter(prefix="/v1")
    api.include_router(report_router)
    api.include_router(dashboard_router)
    api.include_router(status_router)
    api.include_router(workspaces_router)
    api.include_router(invites_router)
    api.include_router(users_router)
    app.include_router(api)

    return app


app = create_app()
