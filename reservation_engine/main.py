# reservation_engine/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reservation_engine.api.v1.router import api_router
from reservation_engine.core.cache import TableListingCache
from reservation_engine.core.config import settings
from reservation_engine.core.database import (
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)
from reservation_engine.core.logging import setup_logging
from reservation_engine.core.redis_ import close_redis, get_redis
from reservation_engine.exceptions.storage_exceptions import StorageTimeoutError
from reservation_engine.services.engine import ReservationEngine, build_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    An engine passed to create_app is used as is; otherwise one is built
    from settings.
    """
    setup_logging(settings.LOG_LEVEL)

    db_engine = None
    if getattr(app.state, "engine", None) is None:
        cache = TableListingCache(await get_redis(), ttl=settings.AVAILABLE_TABLES_CACHE_TTL)
        session_factory = None
        if settings.STORE_BACKEND == "database":
            db_engine = create_engine()
            await init_db(db_engine)
            session_factory = create_session_factory(db_engine)
        app.state.engine = build_engine(settings, session_factory=session_factory, cache=cache)
        logger.info(f"Reservation engine started with {settings.STORE_BACKEND} store")

    yield

    if db_engine is not None:
        await close_db(db_engine)
    await close_redis()


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())}
    )


async def storage_timeout_handler(_: Request, exc: StorageTimeoutError) -> JSONResponse:
    logger.error(f"Storage timeout: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is not responding, please try again"}
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


def create_app(engine: Optional[ReservationEngine] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        engine: Prebuilt reservation engine, mainly for tests

    Returns:
        Configured application
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        lifespan=lifespan
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StorageTimeoutError, storage_timeout_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": settings.PROJECT_NAME,
            "docs": f"{settings.API_V1_PREFIX}/docs"
        }

    return app


app = create_app()
