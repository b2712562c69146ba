"""
Main FastAPI application entry point.
Configures the application, middleware, and routes.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session, SQLModel

from app.api.errors import register_exception_handlers
from app.api.routes import admin, auth, health, users
from app.core.config import settings
from app.core.exceptions import AppError
from app.core.logging import get_logger, setup_logging
from app.db.session import engine
from app.models.user import UserRole
from app.schemas.user import UserCreate
from app.services.user_service import UserService

# Setup logging
setup_logging()
logger = get_logger(__name__)


def bootstrap_first_superuser() -> None:
    """Create the configured first SUPER_ADMIN unless its email or username exists."""
    with Session(engine) as session:
        if UserService.email_taken(session, settings.FIRST_SUPERUSER_EMAIL) or (
            UserService.username_taken(session, settings.FIRST_SUPERUSER_USERNAME)
        ):
            logger.info("First superuser already exists")
            return

        logger.info("Creating first superuser...")
        superuser = UserCreate(
            username=settings.FIRST_SUPERUSER_USERNAME,
            email=settings.FIRST_SUPERUSER_EMAIL,
            password=settings.FIRST_SUPERUSER_PASSWORD,
            name="Admin User",
        )
        try:
            UserService.create(session, superuser, role=UserRole(settings.FIRST_SUPERUSER_ROLE))
        except AppError as e:
            logger.error(f"Failed to create superuser: {e.message}")
            logger.warning("Continuing without superuser. Admin endpoints may not work.")
            return
        logger.info(f"Superuser created: {settings.FIRST_SUPERUSER_EMAIL}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")

    logger.info("Creating database tables...")
    SQLModel.metadata.create_all(engine)

    if not settings.DISABLE_BOOTSTRAP_USERS:
        bootstrap_first_superuser()
    else:
        logger.info("User bootstrapping disabled (DISABLE_BOOTSTRAP_USERS=true)")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

# Configure CORS for the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "content-type", "accept"],
)

register_exception_handlers(app)

app.include_router(health.router, prefix=settings.API_V1_PREFIX)
app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(users.router, prefix=settings.API_V1_PREFIX)
app.include_router(admin.router, prefix=settings.API_V1_PREFIX)
