"""FastAPI application — main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.infrastructure.database import engine, Base
from app.core.logging import configure_logging
from app.core.middleware import setup_middleware
from app.core.exceptions import AppError, app_error_handler, global_exception_handler

# Import all models so SQLAlchemy knows about them
from app.domain.models.complaint import Complaint
from app.domain.models.status_history import StatusHistory
from app.domain.models.device_token import DeviceToken
from app.domain.models.notification_log import NotificationLog
from app.domain.models.complaint_write import ComplaintWriteEvent
from app.domain.models.civic_issue import CivicIssue
from app.domain.models.user import User, ROLE_SUPER_ADMIN

from app.application.services.trigger_handler import register_complaint_write_listener

# Import routers
from app.interfaces.api.auth import router as auth_router
from app.interfaces.api.complaints import router as complaints_router
from app.interfaces.api.notifications import router as notifications_router
from app.interfaces.api.directory import router as directory_router
from app.interfaces.api.dashboard import router as dashboard_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)

# Every committed complaint write is queued for the trigger handler
register_complaint_write_listener()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    logger.info("Starting Civic Admin Portal...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    # Create default super admin if none exists
    from app.infrastructure.database import SessionLocal
    from app.application.services.auth_service import get_user_by_email, create_user
    db = SessionLocal()
    try:
        admin = get_user_by_email(db, settings.DEFAULT_ADMIN_EMAIL)
        if not admin:
            create_user(
                db,
                name="Super Admin",
                email=settings.DEFAULT_ADMIN_EMAIL,
                password=settings.DEFAULT_ADMIN_PASSWORD,
                role=ROLE_SUPER_ADMIN,
            )
            logger.info("Default admin user created", email=settings.DEFAULT_ADMIN_EMAIL)
    finally:
        db.close()

    if settings.SCHEDULER_ENABLED:
        from app.scheduler.jobs import start_scheduler
        start_scheduler()

    yield

    if settings.SCHEDULER_ENABLED:
        from app.scheduler.jobs import stop_scheduler
        stop_scheduler()
    logger.info("Civic Admin Portal stopped")


app = FastAPI(
    title="Civic Admin Portal",
    description="API Backend — complaint tracking, push notifications and SLA escalation",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup Middleware (Correlation ID, Logging)
setup_middleware(app)

# Exception handling
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(complaints_router)
app.include_router(notifications_router)
app.include_router(directory_router)
app.include_router(dashboard_router)


@app.get("/")
def root():
    return {
        "name": "Civic Admin Portal",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
