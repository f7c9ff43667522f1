"""
Jivana Health - Main Application
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jivana.config import settings
from jivana.database import init_db, check_connection
from jivana.services.analysis_service import build_analysis_service
from jivana.services.identity_service import LocalIdentityProvider
from jivana.services.storage_service import build_object_store
from jivana.utils.exceptions import JivanaError
from jivana.api.auth import router as auth_router
from jivana.api.blood_tests import router as blood_tests_router
from jivana.api.sharing import router as sharing_router


# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup and shutdown events
    """
    logger.info(f"Starting {settings.APP_NAME} backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.APP_NAME} backend...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Blood test records with AI analysis, trend charts and sharing",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# External collaborators, chosen once per process
app.state.object_store = build_object_store(settings)
app.state.analysis_service = build_analysis_service(settings)
app.state.identity_provider = LocalIdentityProvider()


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "api": settings.API_V1_STR,
        }
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    database_ok = check_connection()
    return {
        "status": "healthy" if database_ok else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": "connected" if database_ok else "unavailable"
    }


# Register routers with prefix
app.include_router(auth_router, prefix=settings.API_V1_STR, tags=["Authentication"])
app.include_router(blood_tests_router, prefix=settings.API_V1_STR, tags=["Blood Tests"])
app.include_router(sharing_router, prefix=settings.API_V1_STR, tags=["Sharing"])


@app.exception_handler(JivanaError)
async def jivana_exception_handler(request: Request, exc: JivanaError):
    """Render application errors with their status code"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An internal server error occurred",
                "details": str(exc) if settings.DEBUG else None
            }
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "jivana.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
