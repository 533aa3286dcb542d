"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from campus_insider import __version__
from campus_insider.config import get_settings
from campus_insider.db.engine import dispose_engine, init_db
from campus_insider.routers import equipment, feed, health, posts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and the schema on startup, release the pool on shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.environment == "development" else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("campus-insider API v%s starting (%s)", __version__, settings.environment)

    # Access tokens are keyed on the secret; the default one is refused in production
    settings.validate_production()

    # Local databases get their tables on boot; deployed schemas are migrated separately
    if settings.environment == "development":
        await init_db()
        logger.info("Tables for users, equipment, carpools and posts are ready")

    yield

    await dispose_engine()
    logger.info("campus-insider API stopped")


def create_app() -> FastAPI:
    """Build the campus-insider app with its feed, post, equipment and health routes."""
    settings = get_settings()
    is_development = settings.environment == "development"

    app = FastAPI(
        title="campus-insider API",
        description="Campus community backend: equipment, carpools, posts and the activity feed",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if is_development else None,
        redoc_url="/redoc" if is_development else None,
        openapi_url="/openapi.json" if is_development else None,
    )

    # Browser clients authenticate with a bearer header, never cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["X-RateLimit-Remaining"],
    )

    # Feed pages are per user and ranked against the request time; never cache them
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response

    for module in (health, feed, posts, equipment):
        app.include_router(module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "campus_insider.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
