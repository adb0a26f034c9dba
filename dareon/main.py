import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from dareon.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Routers
from dareon.routers import ai, auth, files, health, integrations
from dareon.db.mongo_client import close_mongo, connect_to_mongo, initialize_indexes
from dareon.db.redis_client import redis_client
from dareon.utils.structured_logging import StructuredLogger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    🔌 Application Lifecycle.

    Startup:
    - Validate configuration (fatal in production)
    - Connect to MongoDB and ensure indexes
    - Warm Redis

    Shutdown:
    - Close MongoDB and Redis
    """
    issues = settings.validate_critical_settings()
    if issues:
        logger.error("Configuration validation failed:")
        for issue in issues:
            logger.error(f"  - {issue}")
        if settings.is_production:
            raise RuntimeError("Critical configuration errors")
        logger.warning("Running in development mode with configuration issues")
    else:
        logger.info("Configuration validation passed")

    logger.info("🚀 Connecting to MongoDB...")
    await connect_to_mongo()
    await initialize_indexes()

    if await redis_client.ping():
        logger.info("✅ Redis warmed up")
    else:
        logger.warning("⚠️ Redis unavailable, rate limiting disabled")

    try:
        yield
    finally:
        logger.info("🛑 Closing connections...")
        await close_mongo()
        await redis_client.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Dareon backend - files, integrations and AI command dispatch",
    lifespan=lifespan,
)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with path, method, status and latency"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            StructuredLogger.log_request(
                path=request.url.path,
                method=request.method,
                status_code=500,
                latency_ms=(time.time() - start_time) * 1000,
                error_type=type(e).__name__,
            )
            raise

        StructuredLogger.log_request(
            path=request.url.path,
            method=request.method,
            status_code=response.status_code,
            latency_ms=(time.time() - start_time) * 1000,
        )
        return response


app.add_middleware(StructuredLoggingMiddleware)

# CORS (Frontend ↔ Backend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# Every error leaves the API as {success: false, error}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg", ""))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": ", ".join(messages) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"success": False, "error": "Server Error"})


app.include_router(health.router, tags=["Health"])
app.include_router(auth.router)
app.include_router(files.router)
app.include_router(ai.router)
app.include_router(integrations.router)


@app.get("/")
async def root():
    return {"success": True, "service": settings.APP_NAME, "version": settings.APP_VERSION}

