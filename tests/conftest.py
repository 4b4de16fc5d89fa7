"""
Pytest configuration and fixtures.
"""
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from image_manager.config import settings
from image_manager.main import app
from image_manager.services.image_manager import ImageManager


@pytest.fixture
def public_root(tmp_path, monkeypatch):
    """Empty public root wired into the app settings."""
    root = tmp_path / "public"
    root.mkdir()
    monkeypatch.setattr(settings, "PUBLIC_ROOT", root)
    return root


@pytest.fixture
def make_image(public_root):
    """Factory writing a solid-color image below the public root."""

    def _make(relative_path, size=(800, 600), color=(200, 30, 30), mode="RGB", format=None, **save_kwargs):
        path = public_root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color).save(path, format=format, **save_kwargs)
        return path

    return _make


@pytest.fixture
def error_image(make_image):
    """Placeholder image at the default location."""
    return make_image("vendor/image-manager/error.jpg", size=(400, 400), color=(128, 128, 128))


@pytest.fixture
def manager(public_root, error_image):
    """ImageManager rooted at the temporary public root."""
    return ImageManager(public_root=public_root)


@pytest.fixture
def client(public_root):
    """Create a test client."""
    return TestClient(app)
