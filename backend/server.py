from fastapi import FastAPI, APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
from pathlib import Path
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import time

# Load environment variables first
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from config import get_settings, get_cors_config, validate_environment
from logging_config import setup_logging, get_logger, set_request_id
from sentry_integration import init_sentry, capture_exception
from database import init_db, close_db, get_engine
from routers import clients_router
from utils.encryption import get_encryption_service, ConfigurationError, DecryptionError

settings = get_settings()

# Use JSON format in production, plain text in development
setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.is_production,
    service_name="client-directory"
)
logger = get_logger(__name__)

if settings.SENTRY_DSN:
    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.1 if settings.is_production else 0.0,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("=" * 60)
    logger.info("Starting Client Directory API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    env_status = validate_environment()
    for error in env_status["errors"]:
        logger.error(f"Configuration Error: {error}")
    if not env_status["valid"] and settings.is_production:
        raise RuntimeError("Cannot start in production with invalid configuration")

    for warning in env_status.get("warnings", []):
        logger.warning(f"Configuration Warning: {warning}")

    # Key material must be in place before any request touches a mobile number
    try:
        get_encryption_service().initialize(
            passphrase=settings.PASSPHRASE or None,
            passphrase_path=settings.PASSPHRASE_PATH or None
        )
    except ConfigurationError as e:
        logger.error(f"Failed to initialize encryption: {e}")
        raise

    await init_db()
    logger.info("Client Directory API started successfully")

    yield

    logger.info("Shutting down Client Directory API...")
    await close_db()


app = FastAPI(
    title=settings.API_TITLE,
    description="""
    Directory of clients: fixed fields (id, email, mobile) plus arbitrary
    caller-defined attributes. Mobile numbers are encrypted at rest and only
    returned masked.
    """,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
)

api_router = APIRouter(prefix="/api")


@api_router.get("/health", tags=["Health"])
async def health_check():
    """
    Health check for load balancers and uptime monitors.

    Returns:
    - 200: All systems operational
    - 503: Database unavailable or encryption not initialized
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.API_VERSION,
        "checks": {}
    }

    try:
        from sqlalchemy import text

        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {"status": "disconnected", "error": str(e)}

    encryption_ready = get_encryption_service().is_initialized
    health_status["checks"]["encryption"] = {"status": "ready" if encryption_ready else "not_initialized"}
    if not encryption_ready:
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status


api_router.include_router(clients_router)
app.include_router(api_router)

app.add_middleware(CORSMiddleware, **get_cors_config())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag log records with the request id and log failed requests"""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", f"req-{int(start_time * 1000)}")
    set_request_id(request_id)

    try:
        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

        # Path only; query strings may carry search text
        if settings.debug_enabled or response.status_code >= 400:
            logger.info(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")

        return response
    except Exception as e:
        logger.error(f"[{request_id}] Request failed: {e}")
        raise
    finally:
        set_request_id(None)


@app.exception_handler(DecryptionError)
async def decryption_error_handler(request: Request, exc: DecryptionError):
    """A stored mobile could not be decrypted; fail this request only."""
    logger.error(f"Decryption failed on {request.method} {request.url.path}: {exc}")
    capture_exception(exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "decryption_failed", "message": "Stored client data could not be decrypted"}
    )
