"""
Main FastAPI application entry point.
Initializes the app, middleware, and routes.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from eartraining.config import settings
from eartraining.services.cosmos_db_service import CosmosDBService
from eartraining.services.email_service import email_service
from eartraining.services.google_oauth_service import google_oauth_service

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Ear training backend: accounts, gamified progress and chord-progression exercises",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """
    Run on application startup.
    Connect to Cosmos DB and install the handle on app.state.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    if getattr(app.state, "db", None) is None:
        db = CosmosDBService()
        try:
            await db.initialize()
            app.state.db = db
        except Exception as e:
            # Requests retry the connection through get_db
            logger.error(f"Cosmos DB not available at startup: {e}")

    logger.info("Application started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Run on application shutdown.
    Close the Cosmos DB client.
    """
    logger.info("Shutting down application...")

    db = getattr(app.state, "db", None)
    if isinstance(db, CosmosDBService):
        await db.close()
    app.state.db = None

    logger.info("Application shutdown complete")


@app.get("/")
async def root():
    """Health check endpoint"""
    return JSONResponse(content={
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    })


@app.get("/health")
async def health_check():
    """
    Detailed health check endpoint.
    Check all service connections.
    """
    db = getattr(app.state, "db", None)
    database_up = db is not None and await db.ping()

    health_status = {
        "status": "healthy" if database_up else "degraded",
        "services": {
            "api": "up",
            "database": "up" if database_up else "down",
            "email": "configured" if email_service.is_configured else "not_configured",
            "google_oauth": "configured" if google_oauth_service.is_configured else "not_configured"
        }
    }

    return JSONResponse(content=health_status)


# Include routers
from eartraining.api.v1.endpoints import auth, users, progress, progressions, admin
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(users.router, prefix=f"{settings.API_V1_PREFIX}/users", tags=["users"])
app.include_router(progress.router, prefix=f"{settings.API_V1_PREFIX}/progress", tags=["progress"])
app.include_router(progressions.router, prefix=f"{settings.API_V1_PREFIX}/progressions", tags=["progressions"])
app.include_router(admin.router, prefix=f"{settings.API_V1_PREFIX}/admin", tags=["admin"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "eartraining.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
