"""FastAPI entrypoint."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import errors
from .cache import ResultCache
from .config import Settings, get_settings
from .database import build_engine, build_sessionmaker, create_tables
from .logging_config import configure_logging
from .routers import orders
from .services.order_service import OrderQueryService
from .store import InMemoryOrderStore, OrderStore, SqlOrderStore

logger = logging.getLogger(__name__)


def build_order_service(settings: Settings, store: OrderStore) -> OrderQueryService:
    cache = ResultCache(max_entries=settings.cache_max_entries)
    return OrderQueryService(
        store,
        cache,
        orders_ttl=settings.orders_cache_ttl_seconds,
        stats_ttl=settings.stats_cache_ttl_seconds,
        single_flight=settings.cache_single_flight,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if settings.store_backend == "memory":
            store = InMemoryOrderStore()
        else:
            engine = build_engine(settings)
            await create_tables(engine)
            store = SqlOrderStore(build_sessionmaker(engine))
        app.state.order_service = build_order_service(settings, store)
        logger.info("%s started (store=%s, env=%s)", settings.app_name, settings.store_backend, settings.environment)
        try:
            yield
        finally:
            if engine is not None:
                await engine.dispose()

    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(errors.OrderHubError)
    async def order_hub_error_handler(request: Request, exc: errors.OrderHubError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"] if part != "body"),
                "message": err["msg"],
                "code": err["type"],
            }
            for err in exc.errors()
        ]
        body = errors.ValidationError("Request body validation failed", fields=details).to_dict()
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.get("/health", tags=["System"])
    def health_check(request: Request):
        service: OrderQueryService = request.app.state.order_service
        return {"status": "ok", "environment": settings.environment, "cache": service.cache_info()}

    app.include_router(orders.router)

    return app


app = create_app()
