"""
Tests for settings and call tracing.
"""
import logging

from image_manager.config import Settings, settings
from image_manager.utils.logging import trace_calls


def test_upload_limit_derived_from_megabytes():
    assert Settings(MAX_UPLOAD_MB=2).MAX_UPLOAD_SIZE_BYTES == 2 * 1024 * 1024


def test_paths_are_relative_to_public_root(tmp_path):
    config = Settings(PUBLIC_ROOT=tmp_path, UPLOAD_DIR="media")

    assert config.upload_path == (tmp_path / "media").resolve()
    assert config.error_image_path == (tmp_path / "vendor" / "image-manager" / "error.jpg").resolve()


@trace_calls
def _scale(value, factor=2):
    return value * factor


def test_trace_calls_disabled_by_default(caplog):
    with caplog.at_level(logging.DEBUG, logger="image_manager"):
        assert _scale(3) == 6

    assert not [r for r in caplog.records if "[TRACE]" in r.message]


def test_trace_calls_logs_entry_and_exit(monkeypatch, caplog):
    monkeypatch.setattr(settings, "TRACE_CALLS", True)

    with caplog.at_level(logging.DEBUG, logger="image_manager"):
        assert _scale(3, factor=b"xx") == b"xxxxxx"

    messages = [r.message for r in caplog.records if "[TRACE]" in r.message]
    assert messages[0].startswith("[TRACE] ENTER")
    assert "arg0=3" in messages[0]
    assert "factor=<bytes:2>" in messages[0]
    assert messages[1].startswith("[TRACE] EXIT")
    assert "durationMs=" in messages[1]


def test_pixel_limit_applied_once_at_startup(public_root, monkeypatch):
    from fastapi.testclient import TestClient
    from PIL import Image

    from image_manager.clients.pillow_codec import PillowCodec
    from image_manager.main import app

    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", Image.MAX_IMAGE_PIXELS)
    monkeypatch.setattr(settings, "MAX_IMAGE_PIXELS", 4096)

    with TestClient(app):
        assert Image.MAX_IMAGE_PIXELS == 4096

    Image.MAX_IMAGE_PIXELS = 100
    PillowCodec()
    assert Image.MAX_IMAGE_PIXELS == 100


def test_configure_pillow_keeps_default_for_none(monkeypatch):
    from PIL import Image

    from image_manager.clients.pillow_codec import configure_pillow

    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1234)

    configure_pillow(None)

    assert Image.MAX_IMAGE_PIXELS == 1234
