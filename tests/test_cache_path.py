"""
Tests for cache path derivation.
"""
import os

import pytest

from image_manager.clients.filesystem_store import FileSystemCacheStore
from image_manager.models import Mode
from image_manager.services.cache_path import CachePathResolver, derivative_filename
from image_manager.utils.errors import DirectoryCreateError, InvalidModeError, UnsupportedFormatError


@pytest.fixture
def resolver(public_root):
    return CachePathResolver(FileSystemCacheStore(), public_root)


def test_resolve_layout(resolver, public_root):
    source = public_root / "uploads" / "photo.jpg"

    cache_path = resolver.resolve(source, 200, 100, "crop")

    assert cache_path.directory == public_root / "uploads" / "200-100" / "crop"
    assert cache_path.filesystem_path == public_root / "uploads" / "200-100" / "crop" / "photo.jpg"
    assert cache_path.public_path == "/uploads/200-100/crop/photo.jpg"


def test_resolve_is_pure(resolver, public_root):
    """Resolving never touches the disk and always returns the same value."""
    source = public_root / "uploads" / "photo.jpg"

    first = resolver.resolve(source, 200, 100, Mode.FIT)
    second = resolver.resolve(str(source), 200, 100, "fit")

    assert first == second
    assert not (public_root / "uploads").exists()


def test_modes_do_not_collide(resolver, public_root):
    source = public_root / "photo.jpg"

    crop = resolver.resolve(source, 100, 100, "crop")
    fit = resolver.resolve(source, 100, 100, "fit")

    assert crop.filesystem_path != fit.filesystem_path
    assert crop.public_path == "/100-100/crop/photo.jpg"
    assert fit.public_path == "/100-100/fit/photo.jpg"


def test_output_format_swaps_extension(resolver, public_root):
    cache_path = resolver.resolve(public_root / "photo.jpg", 50, 50, "fit", "webp")

    assert cache_path.filesystem_path.name == "photo.webp"
    assert cache_path.public_path == "/50-50/fit/photo.webp"


def test_derivative_filename():
    assert derivative_filename("photo.jpg") == "photo.jpg"
    assert derivative_filename("photo.jpg", "PNG") == "photo.png"
    assert derivative_filename("photo.JPG", "jpg") == "photo.JPG"
    assert derivative_filename("photo.v2.jpg", "webp") == "photo.v2.webp"


def test_source_outside_public_root_keeps_absolute_path(resolver, tmp_path):
    source = tmp_path / "private" / "scan.png"

    cache_path = resolver.resolve(source, 10, 20, "fit-y")

    assert cache_path.public_path == f"{(tmp_path / 'private').as_posix()}/10-20/fit-y/scan.png"


def test_public_source_path(resolver, public_root):
    assert resolver.public_source_path(public_root / "icons" / "logo.svg") == "/icons/logo.svg"
    assert resolver.public_source_path(public_root / "logo.svg") == "/logo.svg"


def test_get_path(resolver, public_root):
    cache_path = resolver.resolve(public_root / "photo.jpg", 100, 100, "crop")

    assert CachePathResolver.get_path(cache_path) == "/100-100/crop/photo.jpg"
    assert CachePathResolver.get_path(cache_path, from_root=True) == str(cache_path.filesystem_path)


def test_invalid_mode(resolver, public_root):
    with pytest.raises(InvalidModeError):
        resolver.resolve(public_root / "photo.jpg", 100, 100, "zoom")


def test_ensure_directories_is_idempotent(resolver, public_root):
    cache_path = resolver.resolve(public_root / "photo.jpg", 100, 100, "crop-top")

    resolver.ensure_directories(cache_path)
    marker = cache_path.directory / "keep.txt"
    marker.write_text("x")
    resolver.ensure_directories(cache_path)

    assert cache_path.directory.is_dir()
    assert marker.exists()


def test_ensure_directories_tolerates_concurrent_creation(resolver, public_root, monkeypatch):
    """A directory created by someone else between the check and mkdir is not an error."""
    cache_path = resolver.resolve(public_root / "photo.jpg", 100, 100, "crop")
    real_mkdir = os.mkdir

    def racing_mkdir(path, mode=0o777):
        real_mkdir(path, mode)
        raise FileExistsError(path)

    monkeypatch.setattr("image_manager.clients.filesystem_store.os.mkdir", racing_mkdir)

    resolver.ensure_directories(cache_path)

    assert cache_path.directory.is_dir()


def test_ensure_directories_failure_is_fatal(resolver, public_root, monkeypatch):
    cache_path = resolver.resolve(public_root / "photo.jpg", 100, 100, "crop")

    def denied(path, mode=0o777):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("image_manager.clients.filesystem_store.os.mkdir", denied)

    with pytest.raises(DirectoryCreateError) as exc_info:
        resolver.ensure_directories(cache_path)
    assert "Error creating directory" in exc_info.value.message
    assert not exc_info.value.recoverable


def test_derivative_filename_rejects_path_characters():
    with pytest.raises(UnsupportedFormatError):
        derivative_filename("photo.jpg", "png/x")
