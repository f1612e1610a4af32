"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
import logging

from marketplace.config import settings
from marketplace.database import test_database_connection, create_tables, close_db_connection
from marketplace.routers import (
    auth_router,
    access_router,
    properties_router,
    listings_router,
    media_router,
    transactions_router,
    payments_router,
    subscriptions_router,
    notifications_router,
    inquiries_router,
    recommendations_router,
    monitoring_router
)
from marketplace.utils.exceptions import APIException
from marketplace.services.error_handler import ErrorHandlerService
from marketplace.middleware import RequestContextMiddleware

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")
    elif settings.is_development or settings.is_testing:
        # Production schemas are managed with migrate.py
        await create_tables()

    yield

    logger.info("Shutting down application")
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Backend for a real-estate marketplace.

    ## Features

    * **Accounts**: users, roles, permissions and developer/homeowner/realtor profiles
    * **Properties & Listings**: property records, MLS listings with a status lifecycle, media galleries
    * **Payments**: transactions, gateway payments with an audit trail, refunds
    * **Subscriptions**: plans with listing and featured-listing quotas, trials and billing
    * **Engagement**: threaded notifications, recommendations and behaviour tracking

    ## Authentication

    Most endpoints require authentication. Use the `/api/v1/auth/login` endpoint to obtain a JWT token,
    then include it in the Authorization header as `Bearer <token>`.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Authentication", "description": "Registration, login and user profiles"},
        {"name": "Access Control", "description": "Role and permission administration"},
        {"name": "Properties", "description": "Property records and geographic search"},
        {"name": "Listings", "description": "Market listings and their lifecycle"},
        {"name": "Media", "description": "Property photos, videos and documents"},
        {"name": "Transactions", "description": "Financial transactions and refunds"},
        {"name": "Payments", "description": "Gateway payments, webhooks and refunds"},
        {"name": "Subscriptions", "description": "Plans, billing and quotas"},
        {"name": "Notifications", "description": "Messages and delivery tracking"},
        {"name": "Inquiries", "description": "Buyer questions about listings"},
        {"name": "Recommendations", "description": "Property recommendations and behaviour events"},
        {"name": "Monitoring", "description": "System health endpoints"}
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Processing-Time"],
)

app.add_middleware(RequestContextMiddleware, enable_request_logging=settings.debug)

for router in (
    auth_router,
    access_router,
    properties_router,
    listings_router,
    media_router,
    transactions_router,
    payments_router,
    subscriptions_router,
    notifications_router,
    inquiries_router,
    recommendations_router,
    monitoring_router,
):
    app.include_router(router, prefix=settings.api_v1_prefix)


# Global exception handlers using ErrorHandlerService
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions with structured error responses."""
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors with appropriate error responses."""
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with secure error responses."""
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Monitoring"])
async def root():
    """Basic API information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_v1_prefix
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "marketplace.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
