"""
Pillow-backed codec for GIF, JPEG, PNG and WEBP.
"""
import logging
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from image_manager.clients.interfaces import IImageCodec
from image_manager.models import ImageInfo
from image_manager.utils.errors import DecodeError, EncodeError, UnsupportedFormatError

logger = logging.getLogger("image_manager")

# MIME type -> Pillow format of the sources we can transform
SUPPORTED_MIME_TYPES: Dict[str, str] = {
    "image/gif": "GIF",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

# Extension / format name -> Pillow format
OUTPUT_FORMATS: Dict[str, str] = {
    "gif": "GIF",
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}

# Multi-picture JPEGs written by many cameras open as MPO
_FORMAT_MIME_OVERRIDES = {"MPO": "image/jpeg"}

# Pillow format -> buffer modes its encoder writes as-is
_WRITABLE_MODES: Dict[str, Tuple[str, ...]] = {
    "JPEG": ("RGB", "L", "CMYK"),
    "PNG": ("1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"),
    "GIF": ("1", "L", "P", "RGB", "RGBA"),
    "WEBP": ("RGB", "RGBA"),
}


def configure_pillow(max_image_pixels: Optional[int]) -> None:
    """
    Apply the decompression bomb limit. Pillow keeps it process-wide, so call once at startup.

    Args:
        max_image_pixels: Pixel limit (None keeps Pillow's default)
    """
    if max_image_pixels is not None:
        Image.MAX_IMAGE_PIXELS = max_image_pixels


def _normalize_mode(image: Image.Image, pil_format: str) -> Image.Image:
    """Convert image to a mode the target encoder can write."""
    if image.mode in _WRITABLE_MODES[pil_format]:
        return image
    transparent = image.mode in ("RGBA", "LA", "PA", "RGBa", "La", "P") and (
        image.mode != "P" or "transparency" in image.info
    )
    if pil_format == "JPEG" and transparent:
        # White background for transparency
        rgba = image.convert("RGBA")
        rgb_image = Image.new("RGB", image.size, (255, 255, 255))
        rgb_image.paste(rgba, mask=rgba.split()[-1])
        return rgb_image
    if transparent and "RGBA" in _WRITABLE_MODES[pil_format]:
        return image.convert("RGBA")
    return image.convert("RGB")


class PillowCodec(IImageCodec):
    """Codec built on Pillow."""

    def probe(self, path: Path) -> ImageInfo:
        try:
            with Image.open(path) as image:
                mime = _FORMAT_MIME_OVERRIDES.get(image.format) or Image.MIME.get(image.format or "")
                if not mime:
                    raise UnsupportedFormatError("Invalid file type")
                width, height = image.size
                return ImageInfo(mime=mime, width=width, height=height, format=image.format)
        except Image.DecompressionBombError as e:
            raise DecodeError(f"Failed to decode image: {e}")
        except (UnidentifiedImageError, OSError) as e:
            logger.debug(f"Probe failed path={path} error={type(e).__name__}")
            raise UnsupportedFormatError("Invalid file type")

    def decode(self, path: Path) -> Image.Image:
        try:
            with Image.open(path) as image:
                image.load()
                # Parse EXIF while the file is still open
                image.getexif()
                return image
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Failed to decode image: {e}")

    def encode(self, image: Image.Image, format: str, quality: int, exif: Optional[bytes] = None) -> bytes:
        pil_format = OUTPUT_FORMATS.get(format.lower()) or format.upper()
        if pil_format not in OUTPUT_FORMATS.values():
            raise UnsupportedFormatError(f"{format} images are not supported")

        image = _normalize_mode(image, pil_format)

        save_kwargs = {"format": pil_format}
        if pil_format in ("JPEG", "WEBP"):
            save_kwargs["quality"] = quality
        if pil_format == "JPEG":
            save_kwargs["optimize"] = True
        elif pil_format == "PNG":
            # zlib level 0-9
            save_kwargs["compress_level"] = min(9, int(quality / 10 + 0.5))
        if exif and pil_format in ("JPEG", "WEBP"):
            save_kwargs["exif"] = exif

        output = BytesIO()
        try:
            image.save(output, **save_kwargs)
        except (OSError, ValueError) as e:
            raise EncodeError(f"Failed to encode {pil_format} image: {e}")
        return output.getvalue()
