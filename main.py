"""
Main application entry point for the Storefront API.

This module initializes the FastAPI application, sets up logging,
configures CORS and the error handlers, initializes the login rate
limiter with a Redis backend, and includes routers for authentication,
the catalogue, contact intake and mail diagnostics.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- FastAPILimiter: Rate limiting of login attempts
- redis.asyncio: Async Redis client
- fakeredis.aioredis: In-process Redis used when the server is unreachable
- app.database: Database engine
- app.models: SQLAlchemy models
- app.errors: Error taxonomy and handlers
- app.auth, app.categories, app.products, app.contacts, app.notifications: Routers
- app.core: Application settings
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from fakeredis.aioredis import FakeRedis
import redis.asyncio as redis

from app.core import get_settings, configure_logging
from app.database import engine
from app.errors import register_exception_handlers
from app import models, categories, products, contacts, notifications
from app.auth import router as auth_router

configure_logging()
logger = logging.getLogger("app")

# Create tables (for development only)
models.Base.metadata.create_all(bind=engine)

settings = get_settings()

# Initialize FastAPI application
app = FastAPI(title="Storefront API")

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    """
    FastAPI startup event handler.

    Initializes the login rate limiter with the Redis backend. Falls back
    to an in-process FakeRedis if Redis is unavailable.
    """
    if not settings.RATE_LIMIT_ENABLED:
        return
    redis_client = redis.from_url(
        settings.REDIS_URL, encoding="utf-8", decode_responses=True
    )
    try:
        await FastAPILimiter.init(redis_client)
    except (redis.RedisError, OSError) as exc:
        logger.warning("Redis unavailable (%s), rate limiting in-process", exc)
        await FastAPILimiter.init(FakeRedis(decode_responses=True))


@app.on_event("shutdown")
async def shutdown_event():
    """FastAPI shutdown event handler. Closes the rate limiter backend."""
    if settings.RATE_LIMIT_ENABLED:
        await FastAPILimiter.close()


# Include routers for application areas
app.include_router(auth_router)
app.include_router(categories.router)
app.include_router(products.router)
app.include_router(contacts.public_router)
app.include_router(contacts.router)
app.include_router(notifications.router)


@app.get("/")
def root():
    """
    Root endpoint for the API.

    Returns a simple JSON message directing users to the Swagger UI.

    Returns:
        dict: JSON message with information about the API
    """
    return {"msg": "Storefront API. Visit /docs for Swagger UI"}
