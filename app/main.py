import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

# ----------------------------------------------------
# 🔐 LOAD .ENV
# ----------------------------------------------------
load_dotenv(override=True)

from app.config import settings
from app.admin_auth_service import purge_stale_sessions
from app.db import SessionLocal, check_database, engine
from models import Base

# Routers
from routers import admin_graphql, health

# ----------------------------------------------------
# 📝 LOGGING
# ----------------------------------------------------
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app")


# ----------------------------------------------------
# 🗄️ DB: CHECK ALL'AVVIO, PULIZIA SESSIONI, CHIUSURA POOL
# ----------------------------------------------------
def run_session_cleanup() -> int:
    db = SessionLocal()
    try:
        return purge_stale_sessions(db)
    except Exception:
        db.rollback()
        logger.exception("Session cleanup failed")
        return 0
    finally:
        db.close()


async def _session_cleanup_loop(interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await run_in_threadpool(run_session_cleanup)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Testing database connection...")
    try:
        await run_in_threadpool(check_database)
    except Exception:
        logger.critical("Cannot start server without database connection", exc_info=True)
        raise
    logger.info("Database connected successfully")

    # Solo dev: creazione tabelle senza migrazioni
    if settings.env in ("dev", "development") and settings.db_auto_create:
        Base.metadata.create_all(bind=engine)

    await run_in_threadpool(run_session_cleanup)

    cleanup_task = None
    if settings.session_cleanup_interval_hours > 0:
        cleanup_task = asyncio.create_task(
            _session_cleanup_loop(settings.session_cleanup_interval_hours * 3600)
        )

    try:
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cleanup_task
        engine.dispose()
        logger.info("Database connections closed")


# ----------------------------------------------------
# 🚀 FASTAPI APP
# ----------------------------------------------------
app = FastAPI(
    title="Kalenjin Vibes Admin",
    version=health.API_VERSION,
    lifespan=lifespan,
)

# ----------------------------------------------------
# 🌐 CORS CONFIG
# ----------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if not settings.is_production else settings.origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ----------------------------------------------------
# 🧾 REQUEST LOGGING
# ----------------------------------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response: Response = await call_next(request)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info(
        "%s %s - %s - %dms",
        request.method, request.url.path, response.status_code, duration_ms,
    )
    return response


# ----------------------------------------------------
# ❌ 404 / ERRORI
# ----------------------------------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    timestamp = datetime.now(timezone.utc).isoformat()
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not Found",
                "message": f"Route {request.method} {request.url.path} not found",
                "timestamp": timestamp,
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "timestamp": timestamp},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error" if settings.is_production else str(exc),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ----------------------------------------------------
# 🔌 ROUTERS
# ----------------------------------------------------
app.include_router(admin_graphql.router, prefix="/graphql")
app.include_router(health.router)


# ----------------------------------------------------
# 🏠 BASE
# ----------------------------------------------------
@app.get("/")
def root():
    return {"message": "Kalenjin Vibes admin backend attivo e pronto!"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
