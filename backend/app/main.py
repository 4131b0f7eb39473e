"""
CVC intake API
"""
import asyncio

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.logger import logger
from app.db.database import SessionLocal, init_db
from app.middleware.correlation import HEADER as CORRELATION_HEADER, CorrelationMiddleware
from app.services.idempotency_service import idempotency_service

VERSION = "1.0.0"

app = FastAPI(
    title=settings.APP_NAME,
    version=VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.include_router(api_router, prefix="/api/v1")

# CORS must stay outermost
app.add_middleware(CorrelationMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER],
)


@app.get("/")
def read_root():
    return {"message": f"{settings.APP_NAME} API is running", "version": VERSION, "health": "/api/v1/health"}


def _purge_replay_records() -> int:
    db = SessionLocal()
    try:
        return idempotency_service.purge_expired(db)
    finally:
        db.close()


async def _replay_cleanup_loop(interval_seconds: int) -> None:
    """Hourly sweep of expired create-case replay records."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await asyncio.to_thread(_purge_replay_records)
        except Exception:
            logger.exception("Replay record cleanup failed")
            continue
        if removed:
            logger.info(f"Removed {removed} expired replay records")


@app.on_event("startup")
async def startup_event():
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables ensured")

    if settings.IDEMPOTENCY_CLEANUP_ENABLED:
        app.state.replay_cleanup_task = asyncio.create_task(_replay_cleanup_loop(3600))
    logger.info(f"{settings.APP_NAME} API started")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "replay_cleanup_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    logger.info(f"{settings.APP_NAME} API shutdown")
