"""
Tests for filename helpers.
"""
from unittest.mock import patch

from image_manager.utils.filenames import get_extension, slugify_filename, unique_filename


def test_slugify_filename():
    assert slugify_filename("My_Photo@2x.JPG") == "my-photo-at-2x.jpg"
    assert slugify_filename("  Summer  Holiday (1).png") == "summer-holiday-1.png"
    assert slugify_filename("café.webp") == "café.webp"


def test_get_extension():
    assert get_extension("photo.JPG") == "jpg"
    assert get_extension("archive.tar.gz") == "gz"
    assert get_extension("README") == ""


def test_unique_filename_without_collision(tmp_path):
    assert unique_filename("My Photo.jpg", tmp_path) == "my-photo.jpg"


def test_unique_filename_appends_suffix_on_collision(tmp_path):
    (tmp_path / "my-photo.jpg").write_bytes(b"")

    with patch("image_manager.utils.filenames.uuid.uuid4") as mock_uuid:
        mock_uuid.return_value.hex = "0123456789abcdef0123456789abcdef"
        name = unique_filename("My Photo.jpg", tmp_path)

    assert name == "my-photo-0123456789abc.jpg"


def test_unique_filename_for_empty_slug(tmp_path):
    assert unique_filename("!!!", tmp_path) == "image"
    assert unique_filename("!!!.jpg", tmp_path) == "image.jpg"
