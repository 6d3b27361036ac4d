# timewise_auth/main.py
"""
App factory. Em produção:  uvicorn timewise_auth.main:create_app --factory
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from timewise_auth.api.v1.router import api_router, root_router
from timewise_auth.core.auth_middleware import AuthenticationMiddleware
from timewise_auth.core.config import Settings, get_settings
from timewise_auth.core.errors import AuthError
from timewise_auth.core.logging import setup_logging
from timewise_auth.core.ratelimit import SlidingWindowLimiter
from timewise_auth.core.store import InMemoryTokenStore, TokenStore
from timewise_auth.db.bootstrap import run_migrations_and_seed
from timewise_auth.db.session import make_engine, make_session_factory
from timewise_auth.services.identity import SqlIdentityDirectory
from timewise_auth.services.sql_store import SqlTokenStore
from timewise_auth.services.sweeper import start_sweeper, stop_sweeper
from timewise_auth.services.token_service import TokenService

logger = structlog.get_logger(__name__)


def build_token_store(settings: Settings, session_factory) -> TokenStore:
    if settings.TOKEN_STORE_BACKEND == "database":
        return SqlTokenStore(session_factory)
    return InMemoryTokenStore()


@asynccontextmanager
async def lifespan(api: FastAPI):
    settings: Settings = api.state.settings
    if settings.AUTO_MIGRATE:
        await run_in_threadpool(run_migrations_and_seed, settings, api.state.session_factory)
    api.state.sweeper = start_sweeper(
        api.state.token_service,
        settings.TOKEN_SWEEP_INTERVAL_SECONDS,
        api.state.token_rate_limiter,
    )
    logger.info("startup", store_backend=settings.TOKEN_STORE_BACKEND)
    try:
        yield
    finally:
        # timers pendentes não podem sobreviver ao processo
        await stop_sweeper(api.state.sweeper)
        api.state.engine.dispose()
        logger.info("shutdown")


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    store: Optional[TokenStore] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    engine = engine or make_engine(settings.DATABASE_URL)
    session_factory = make_session_factory(engine)
    directory = SqlIdentityDirectory(session_factory)
    store = store or build_token_store(settings, session_factory)

    api = FastAPI(
        title="TimeWise Auth",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
        lifespan=lifespan,
    )
    api.state.settings = settings
    api.state.engine = engine
    api.state.session_factory = session_factory
    api.state.identity_directory = directory
    api.state.token_service = TokenService.from_settings(settings, store=store, identities=directory, clock=clock)
    api.state.token_rate_limiter = SlidingWindowLimiter(settings.TOKEN_RATE_LIMIT, settings.TOKEN_RATE_WINDOW_SECONDS)
    api.state.sweeper = None

    api.add_middleware(AuthenticationMiddleware)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # métricas /metrics (Prometheus)
    if settings.METRICS_ENABLED:
        Instrumentator().instrument(api).expose(api, include_in_schema=False, should_gzip=True)

    api.include_router(root_router)
    api.include_router(api_router, prefix="/api/v1")

    @api.get("/healthz", tags=["health"])
    def healthz():
        return {"status": "ok", "token_store": api.state.token_service.store.counts()}

    @api.exception_handler(AuthError)
    def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @api.exception_handler(IntegrityError)
    def handle_integrity_error(request: Request, exc: IntegrityError):
        return JSONResponse(
            status_code=409,
            content={"code": "UNIQUE_VIOLATION", "message": "Duplicate record.", "details": None},
        )

    @api.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"code": "INTERNAL_ERROR", "message": "Internal error.", "details": None},
        )

    return api
