"""Corsono Backend Application.

This is the main entry point for the Corsono backend service. The service
accepts media uploads for the site's galleries and serves them back.

Modules:
    - gallery: multipart ingestion, listing and static retrieval of gallery files
    - config: YAML-backed settings (server, logging, media galleries)
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from corsono.config import get_config
from corsono.gallery.catalog import GalleryCatalog
from corsono.gallery.router import images_router, router as gallery_router, set_catalog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# python-multipart logs every parser callback at DEBUG.
for _noisy in ("multipart", "python_multipart", "httpx", "httpcore"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def prepare_gallery_directories(catalog: GalleryCatalog) -> None:
    """Create every gallery directory up front; failures are only logged.

    Uploads create their directory on demand, so a failure here is not fatal.
    """
    for gallery in catalog:
        try:
            gallery.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to create %s directory: %s", gallery.directory, exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in corsono.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    catalog = GalleryCatalog.from_settings(config.media)
    prepare_gallery_directories(catalog)
    set_catalog(catalog)
    logger.info(
        "Gallery catalog ready: %s",
        ", ".join(f"{g.name} -> {g.directory}" for g in catalog),
    )

    yield  # Application runs here

    # Shutdown
    set_catalog(None)
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Corsono API",
    description="Backend service for the Corsono media galleries",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(gallery_router)
app.include_router(images_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
