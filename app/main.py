"""
FastAPI application entry point.

Configures the application, middleware, and routes.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.api.routes import diet, food, health, scan
from app.config import get_settings
from app.errors import register_error_handlers
from app.services.body_scanner import BodyScanner
from app.services.completion import OpenAICompletionClient
from app.services.diet_planner import DietPlanner
from app.services.food_identifier import FoodIdentifier
from app.services.image_validator import ImageValidator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Build the completion client, diet/food services and scanner
    - Shutdown: Stop scanning, release the camera and model, close the client
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    completion_client = OpenAICompletionClient(settings.openai)
    if not completion_client.is_configured:
        logger.warning("OPENAI_API_KEY is not set; diet and food requests will fail")

    app.state.completion_client = completion_client
    app.state.diet_planner = DietPlanner(completion_client, settings.openai)
    app.state.food_identifier = FoodIdentifier(
        completion_client,
        ImageValidator(settings.image_validation),
        settings.openai,
    )
    app.state.scanner = BodyScanner.from_settings(settings)

    try:
        yield
    finally:
        # Cleanup on shutdown
        logger.info("Shutting down...")
        scanner = app.state.scanner
        try:
            await scanner.stop()
        finally:
            close = getattr(scanner.segmenter, "close", None)
            if close is not None:
                close()
            await completion_client.close()


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Body proportion scanning from a live camera feed, diet plans from a language "
            "model, and calorie estimates from food photos."
        ),
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Register routes
    app.include_router(
        health.router,
        prefix=settings.api_prefix,
        tags=["Health"],
    )
    app.include_router(
        diet.router,
        prefix=settings.api_prefix,
        tags=["Diet"],
    )
    app.include_router(
        food.router,
        prefix=settings.api_prefix,
        tags=["Food"],
    )
    app.include_router(
        scan.router,
        prefix=settings.api_prefix,
        tags=["Scan"],
    )

    return app


# Create the application instance
app = create_app()
