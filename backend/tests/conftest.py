"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from corsono.config import MediaSettings
from corsono.gallery.catalog import GalleryCatalog
from corsono.gallery.router import get_catalog, set_catalog
from corsono.main import app


@pytest.fixture
def media_root(tmp_path):
    return tmp_path / "images"


@pytest.fixture
def catalog(media_root) -> GalleryCatalog:
    """Stock corsono/art galleries rooted in a temp directory."""
    return GalleryCatalog.from_settings(MediaSettings(root=str(media_root)))


@pytest.fixture
def installed_catalog(catalog):
    """Install the temp catalog as the router singleton for one test."""
    original = get_catalog()
    set_catalog(catalog)
    yield catalog
    set_catalog(original)


@pytest.fixture
def api_client(installed_catalog):
    """Provide a TestClient for the main FastAPI app.

    The lifespan handler is not entered, so the catalog installed by
    ``installed_catalog`` stays in place.
    """
    return TestClient(app)
