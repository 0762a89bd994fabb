from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import circuit_breaker, messages, scheduler
from app.core.config import settings
from app.core.container import build_container
from app.core.errors import AppError
from app.core.logging_config import configure_logging, get_logger
from app.db import create_db_and_tables, engine
from app.middleware.request_logging import RequestLoggingMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info("=" * 50)
    logger.info(f"{settings.PROJECT_NAME} Starting")
    logger.info(f"Circuit breaker: {'ENABLED' if settings.CIRCUIT_BREAKER_ENABLED else 'DISABLED'}")
    logger.info(f"Cache: {'ENABLED' if settings.CACHE_ENABLED else 'DISABLED'}")
    logger.info("=" * 50)

    create_db_and_tables()
    container = build_container(settings, engine)
    app.state.container = container

    if settings.SCHEDULER_AUTO_START:
        container.scheduler.start()
    else:
        logger.info("SCHEDULER_AUTO_START is false - start it via POST /scheduler/start.")

    try:
        yield
    finally:
        # Shutdown: stop() waits for an in-flight tick
        container.shutdown()
        app.state.container = None


app = FastAPI(title=settings.PROJECT_NAME, openapi_url=f"{settings.API_V1_STR}/openapi.json", lifespan=lifespan)

app.add_middleware(cast(Any, RequestLoggingMiddleware))

app.add_middleware(
    cast(Any, CORSMiddleware),
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Response-Time"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=str(exc))
    else:
        logger.info("Request rejected", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(messages.router, prefix=f"{settings.API_V1_STR}/messages", tags=["messages"])
app.include_router(scheduler.router, prefix=f"{settings.API_V1_STR}/scheduler", tags=["scheduler"])
app.include_router(
    circuit_breaker.router, prefix=f"{settings.API_V1_STR}/circuit-breaker", tags=["circuit-breaker"]
)


@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "message-dispatcher"}
