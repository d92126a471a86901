"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.config import Config
from server.routes import discover, enrichment, health
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown logic."""
    logger.info("FastAPI server starting up")

    config = Config()
    if not config.validate():
        logger.warning("No provider credentials found; requests will fail with all_providers_exhausted")
    logger.info(config.get_provider_info())

    yield

    logger.info("FastAPI server shutting down")


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="Mandela Catalog Pipeline API",
        description="Resilient LLM discovery and enrichment for the Mandela effect catalog",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(discover.router)
    app.include_router(enrichment.router)

    return app
