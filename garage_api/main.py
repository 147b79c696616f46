"""
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from garage_api.config import get_settings
from garage_api.database import dispose_engine, init_db
from garage_api.exceptions import register_exception_handlers
from garage_api.logging_config import configure_logging
from garage_api.routers import auth, bookings, goods_requests, inventory, jobs, outbox, users, vehicles

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for the application.
    Handles startup and shutdown events.
    """
    # Startup
    configure_logging(settings.log_level)
    logger.info("Starting %s %s", settings.app_name, settings.app_version)
    await init_db()
    logger.info("Database initialized, API available at %s", settings.api_v1_prefix)

    yield

    # Shutdown
    await dispose_engine()
    logger.info("Shut down %s", settings.app_name)


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Garage Management System API

    Bookings, jobs, technicians and parts inventory for a vehicle service garage.

    ### Entities:
    * **Users**: Customers and staff, with role based access
    * **Vehicles**: Customer vehicles
    * **Bookings**: Service requests and their status workflow
    * **Jobs**: Work units under a booking, with work logs and inspections
    * **Inventory**: Parts catalogue and stock levels
    * **Goods Requests**: Parts claimed by jobs, fulfilled from stock
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix=settings.api_v1_prefix)
app.include_router(users.router, prefix=settings.api_v1_prefix)
app.include_router(vehicles.router, prefix=settings.api_v1_prefix)
app.include_router(bookings.router, prefix=settings.api_v1_prefix)
app.include_router(jobs.router, prefix=settings.api_v1_prefix)
app.include_router(inventory.router, prefix=settings.api_v1_prefix)
app.include_router(goods_requests.router, prefix=settings.api_v1_prefix)
app.include_router(outbox.router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to Garage Management System API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "garage_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
