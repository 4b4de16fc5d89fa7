"""
Apply a TransformSpec to a decoded image.
"""
from PIL import Image

from image_manager.models import TransformSpec


def has_alpha(image: Image.Image) -> bool:
    """True for images carrying per-pixel or palette transparency."""
    return image.mode in ("RGBA", "LA", "PA", "RGBa", "La") or "transparency" in image.info


def prepare_buffer(image: Image.Image) -> Image.Image:
    """
    Convert to a mode Pillow can resample with a high-quality filter.

    Transparent images become RGBA so alpha is resampled per pixel instead of
    being blended away or snapped to a palette entry.
    """
    if has_alpha(image):
        return image if image.mode == "RGBA" else image.convert("RGBA")
    if image.mode in ("RGB", "L", "CMYK"):
        return image
    return image.convert("RGB")


def render(image: Image.Image, spec: TransformSpec) -> Image.Image:
    """
    Resample to the render size, then cut the crop window when there is one.

    Crop offsets are truncated to whole pixels.

    Args:
        image: Decoded, upright source image
        spec: Geometry from compute_transform

    Returns:
        New image of spec.output_size
    """
    buffer = prepare_buffer(image)
    size = (spec.render_width, spec.render_height)
    if buffer.size != size:
        buffer = buffer.resize(size, Image.Resampling.LANCZOS)
    elif buffer is image:
        buffer = image.copy()

    if spec.crop is None:
        return buffer

    x = int(spec.crop.x)
    y = int(spec.crop.y)
    return buffer.crop((x, y, x + spec.crop.width, y + spec.crop.height))
