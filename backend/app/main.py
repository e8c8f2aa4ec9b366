from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.core.config import settings, missing_critical_settings
from app.core.database import init_db, close_db, get_session_local
from app.core.exceptions import SocietySyncError, error_response
from app.core.logging_config import logger
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.core.rate_limiter import limiter, rate_limit_exceeded_handler
from app.api.v1.router import api_router
from app.services.otp_service import otp_service
from slowapi.errors import RateLimitExceeded

APP_VERSION = "1.0.0"


def validate_critical_config():
    """Refuse to start without a database or signing secrets"""
    missing = missing_critical_settings()
    if missing:
        for name in missing:
            logger.critical(f"[Startup] {name} is not set or still a placeholder")
        raise RuntimeError(f"Missing critical configuration: {', '.join(missing)}")

    if not (settings.SMTP_USER and settings.SMTP_PASSWORD):
        logger.warning("[Startup] SMTP not configured - OTP and invite emails will not be delivered")


async def purge_stale_challenges():
    async with get_session_local()() as session:
        await otp_service.purge_expired(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} {APP_VERSION} ({settings.ENVIRONMENT}, api {settings.API_VERSION})")

    validate_critical_config()
    await init_db()
    await purge_stale_challenges()
    logger.info("[Startup] Database ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Society membership, invites and recruitment for college clubs",
    version=APP_VERSION,
    lifespan=lifespan,
    redirect_slashes=False
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Last added runs first: CORS, then security headers, then request logging
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


@app.exception_handler(SocietySyncError)
async def societysync_exception_handler(request: Request, exc: SocietySyncError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": str(exc) if settings.DEBUG else "An error occurred",
            "error": {"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT
    }


app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
