"""
FastAPI application entry point for the Nest Cam HomeKit bridge

Initializes the FastAPI app, registers routers, and starts the HomeKit
bridge with the account's cameras on startup.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nestcam.api.v1.homekit import router as homekit_router
from nestcam.api.v1.ui import router as ui_router
from nestcam.config.nest import get_nest_config
from nestcam.core.config import settings
from nestcam.core.logging_config import get_logger, setup_logging
from nestcam.middleware.logging_middleware import RequestLoggingMiddleware
from nestcam.services.connection import get_cameras
from nestcam.services.homekit_service import get_homekit_service, shutdown_homekit_service

# Application version
APP_VERSION = "1.0.0"

setup_logging(app_version=APP_VERSION)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.

    Startup fetches the account's cameras and starts the HomeKit bridge
    when it is enabled and an access token is configured. Bridge failures
    are logged and do not prevent the API from serving.
    """
    logger.info(
        "Application starting",
        extra={"event_type": "app_startup", "version": APP_VERSION}
    )

    try:
        homekit_service = get_homekit_service()
        nest_config = get_nest_config()

        if not homekit_service.config.enabled:
            logger.debug("HomeKit service disabled", extra={"event_type": "homekit_disabled"})
        elif not nest_config.access_token:
            logger.warning(
                "No Nest access token configured; authenticate through the UI and set NEST_ACCESS_TOKEN",
                extra={"event_type": "homekit_no_token"}
            )
        else:
            cameras = await get_cameras(nest_config)
            success = await homekit_service.start(cameras)
            if success:
                logger.info(
                    "HomeKit service started",
                    extra={
                        "event_type": "homekit_init_complete",
                        "camera_count": homekit_service.accessory_count,
                        "port": homekit_service.config.port
                    }
                )
            else:
                logger.warning(
                    f"HomeKit service failed to start: {homekit_service.get_status().error}",
                    extra={"event_type": "homekit_init_failed"}
                )
    except Exception as e:
        logger.warning(
            f"HomeKit initialization failed (non-fatal): {e}",
            extra={"event_type": "homekit_init_failed", "error": str(e)}
        )

    logger.info(
        "Application startup complete",
        extra={"event_type": "app_startup_complete", "version": APP_VERSION}
    )

    yield

    logger.info("Application shutting down", extra={"event_type": "app_shutdown"})
    await shutdown_homekit_service()
    logger.info("Application shutdown complete", extra={"event_type": "app_shutdown_complete"})


# Create FastAPI app
app = FastAPI(
    title="Nest Cam Bridge API",
    description="Bridge exposing Nest cloud cameras to Apple HomeKit",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def cors_http_exception_handler(request: Request, exc: HTTPException):
    """HTTPException handler that keeps CORS headers on error responses."""
    origin = request.headers.get("origin", "")
    allowed = settings.cors_origins_list

    cors_headers = {}
    if origin in allowed or "*" in allowed:
        cors_headers = {
            "Access-Control-Allow-Origin": origin or allowed[0],
            "Access-Control-Allow-Credentials": "true",
        }

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=cors_headers,
    )


app.add_middleware(RequestLoggingMiddleware)

app.include_router(ui_router, prefix=settings.API_V1_PREFIX)
app.include_router(homekit_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """Root endpoint - API status check"""
    return {
        "name": "Nest Cam Bridge API",
        "version": APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    homekit_service = get_homekit_service()
    return {
        "status": "healthy",
        "homekit_running": homekit_service.is_running,
        "camera_count": homekit_service.accessory_count
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
