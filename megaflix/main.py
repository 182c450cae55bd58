# megaflix/main.py
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.v1.router import api_router
from .config import settings
from .database import check_db_health, close_db, get_db_stats, init_db
from .redis_client import get_redis_stats, redis_client
from .services.catalog import CatalogError
from .services.progress_reconciler import ReconciliationError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Catalog failures the client can act on keep their own status
_CATALOG_PASSTHROUGH = (400, 404, 503)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {settings.APP_NAME} {settings.APP_VERSION} starting (debug={settings.DEBUG})")

    init_db()

    try:
        await redis_client.connect()
    except Exception as e:
        logger.warning(f"⚠️ Catalog cache unavailable, continuing without it: {e}")

    if not settings.is_catalog_enabled:
        logger.warning("⚠️ TMDB_API_KEY not set, catalog endpoints will answer 503")

    logger.info("✅ Ready")
    yield

    logger.info("🛑 Shutting down")
    await redis_client.disconnect()
    close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Auth, TMDB catalog proxy, My List and watch progress for the Megaflix front end",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

# ============================================================
# Middleware
# ============================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag each request with an id and log it with its duration"""
    request.state.request_id = uuid.uuid4().hex
    started = time.perf_counter()

    response = await call_next(request)

    elapsed = time.perf_counter() - started
    logger.info(f"↔️ {request.method} {request.url.path} {response.status_code} in {elapsed:.3f}s")

    response.headers["X-Request-ID"] = request.state.request_id
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(api_router, prefix="/api/v1")

# ============================================================
# Service endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root() -> dict:
    return {"app": settings.APP_NAME, "version": settings.APP_VERSION, "health": "/health"}


@app.get("/health", tags=["Health"])
async def health() -> dict:
    """Liveness probe; touches no dependency"""
    return {"status": "healthy", "version": settings.APP_VERSION}


@app.get("/health/detailed", tags=["Health"])
async def health_detailed() -> dict:
    """Readiness: database, catalog cache and TMDB configuration"""
    try:
        database = "connected" if check_db_health() else "disconnected"
    except Exception as e:
        database = f"error: {e}"

    cache = await get_redis_stats()
    if not cache.get("enabled"):
        cache_state = "disabled"
    else:
        cache_state = "connected" if cache.get("connected") else "disconnected"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
        "cache": cache_state,
        "catalog": "configured" if settings.is_catalog_enabled else "missing api key",
    }


@app.get("/metrics", tags=["Monitoring"])
async def metrics() -> dict:
    return {"database": get_db_stats(), "cache": await get_redis_stats()}

# ============================================================
# Exception handlers
# ============================================================

@app.exception_handler(ReconciliationError)
async def on_reconciliation_error(request: Request, exc: ReconciliationError):
    logger.error(f"❌ Unreconcilable data on {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(CatalogError)
async def on_catalog_error(request: Request, exc: CatalogError):
    status_code = exc.status_code if exc.status_code in _CATALOG_PASSTHROUGH else 502
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def on_unhandled_error(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    logger.error(f"❌ Unhandled error (request {request_id}): {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc) if settings.DEBUG else "Internal server error",
            "request_id": request_id,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "megaflix.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
