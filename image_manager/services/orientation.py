"""
Camera orientation correction.

Digital cameras store the sensor orientation in the EXIF Orientation tag
instead of rotating pixels. This module turns that tag into an upright pixel
buffer. It never touches the filesystem: persisting the corrected buffer is
the caller's decision.
"""
import logging
from typing import Dict, Optional, Tuple

from PIL import Image

logger = logging.getLogger("image_manager")

EXIF_ORIENTATION_TAG = 274

# tag -> (counter-clockwise rotation in degrees, horizontal mirror)
ORIENTATION_TRANSFORMS: Dict[int, Tuple[int, bool]] = {
    1: (0, False),
    2: (0, True),
    3: (180, False),
    4: (180, True),
    5: (270, True),
    6: (270, False),
    7: (90, True),
    8: (90, False),
}

_ROTATIONS = {
    90: Image.Transpose.ROTATE_90,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_270,
}


class OrientationCorrection:
    """Outcome of orientation correction."""

    def __init__(self, image: Image.Image, tag: int, rotation: int = 0, mirror: bool = False):
        """
        Initialize orientation correction.

        Args:
            image: Upright image (the input itself when nothing changed)
            tag: Orientation tag read from the source
            rotation: Counter-clockwise rotation applied, in degrees
            mirror: Whether a horizontal mirror was applied
        """
        self.image = image
        self.tag = tag
        self.rotation = rotation
        self.mirror = mirror

    @property
    def changed(self) -> bool:
        return bool(self.rotation or self.mirror)


def read_orientation(image: Image.Image) -> int:
    """
    Read the EXIF orientation tag.

    Returns:
        Tag value 1-8; 1 when the tag is missing or unreadable
    """
    try:
        value = image.getexif().get(EXIF_ORIENTATION_TAG, 1)
        tag = int(value)
    except (TypeError, ValueError, SyntaxError) as e:
        logger.debug(f"Unreadable orientation tag, assuming upright: {e}")
        return 1
    return tag if tag in ORIENTATION_TRANSFORMS else 1


def mirror_image(image: Image.Image) -> Image.Image:
    """Flip an image horizontally (columns traversed right-to-left)."""
    return image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)


def correct_orientation(image: Image.Image, tag: Optional[int] = None) -> OrientationCorrection:
    """
    Rotate and mirror an image so it displays upright.

    Rotation is applied before the mirror.

    Args:
        image: Decoded source image
        tag: Orientation tag; read from the image's EXIF data when omitted

    Returns:
        OrientationCorrection with the upright image
    """
    if tag is None:
        tag = read_orientation(image)

    rotation, mirror = ORIENTATION_TRANSFORMS.get(tag, (0, False))
    corrected = image
    if rotation:
        corrected = corrected.transpose(_ROTATIONS[rotation])
    if mirror:
        corrected = mirror_image(corrected)

    return OrientationCorrection(corrected, tag, rotation, mirror)


def reset_orientation_exif(image: Image.Image) -> bytes:
    """
    EXIF block of an image with the orientation tag consumed (set to 1).

    Args:
        image: Image whose EXIF data should be carried over

    Returns:
        Serialized EXIF bytes for the encoder
    """
    exif = image.getexif()
    exif[EXIF_ORIENTATION_TAG] = 1
    return exif.tobytes()
