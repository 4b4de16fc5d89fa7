"""
Filename helpers for stored source images.
"""
import re
import uuid
from pathlib import Path
from typing import Union


def get_extension(filename: Union[str, Path]) -> str:
    """Lower-cased final extension without the dot ("" when there is none)."""
    return Path(filename).suffix.lstrip(".").lower()


def slugify_filename(filename: str) -> str:
    """
    Normalize a filename into a URL-safe slug, keeping the extension dot.

    "My_Photo@2x.JPG" -> "my-photo-at-2x.jpg"
    """
    filename = re.sub(r"_+", "-", filename)
    filename = filename.replace("@", "-at-")
    # Keep letters, digits, separators, periods and whitespace
    filename = re.sub(r"[^\-\.\w\s]+", "", filename.lower())
    filename = re.sub(r"[\-\s]+", "-", filename)
    return filename.strip("-")


def unique_filename(filename: str, destination: Union[str, Path]) -> str:
    """
    Slugged filename that doesn't collide with anything in destination.

    Args:
        filename: Requested filename
        destination: Directory the file will be written to

    Returns:
        Filename (not path) safe to create in destination
    """
    destination = Path(destination)
    candidate = slugify_filename(filename)
    if not candidate or candidate.startswith("."):
        candidate = f"image{candidate}"

    while (destination / candidate).exists():
        path = Path(candidate)
        candidate = f"{path.stem}-{uuid.uuid4().hex[:13]}{path.suffix}"

    return candidate
