"""
Geometry for derivative images.

Computes the render size for every output mode and, for the crop modes, the
window cut out of the intermediate render. Everything here is pure and works
in exact integer arithmetic.
"""
from typing import Tuple, Union

from image_manager.models import CropRect, Mode, TransformSpec
from image_manager.utils.errors import InvalidModeError


def _ceil_div(numerator: int, denominator: int) -> int:
    """Ceiling of numerator / denominator for positive integers."""
    return -(-numerator // denominator)


def _round_div(numerator: int, denominator: int) -> int:
    """numerator / denominator rounded to nearest, halves away from zero."""
    return (2 * numerator + denominator) // (2 * denominator)


def parse_mode(mode: Union[Mode, str]) -> Mode:
    """
    Coerce a mode name into a Mode.

    Raises:
        InvalidModeError: If the name is not a known mode
    """
    if isinstance(mode, Mode):
        return mode
    try:
        return Mode(mode)
    except ValueError:
        raise InvalidModeError(f"Invalid mode: {mode}")


def fit_within(orig_width: int, orig_height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Scale to fit inside the box, preserving aspect ratio.

    Images already inside the box are never enlarged.
    """
    if orig_width <= max_width and orig_height <= max_height:
        return orig_width, orig_height

    # Wider rather than taller: width/orig_width * orig_height < max_height
    if max_width * orig_height < max_height * orig_width:
        return max_width, _ceil_div(max_width * orig_height, orig_width)

    return _ceil_div(max_height * orig_width, orig_height), max_height


def fit_width(orig_width: int, orig_height: int, width: int) -> Tuple[int, int]:
    """Lock the width, derive the height. Never stretches a smaller image."""
    height = _round_div(orig_height * width, orig_width)
    if orig_height <= height:
        return orig_width, orig_height
    return width, height


def fit_height(orig_width: int, orig_height: int, height: int) -> Tuple[int, int]:
    """Lock the height, derive the width. Never stretches a smaller image."""
    width = _round_div(orig_width * height, orig_height)
    if orig_width <= width:
        return orig_width, orig_height
    return width, height


def cover(orig_width: int, orig_height: int, crop_width: int, crop_height: int) -> Tuple[int, int]:
    """
    Scale so the result fully covers the crop box.

    Args:
        orig_width: Source width in pixels
        orig_height: Source height in pixels
        crop_width: Final crop width
        crop_height: Final crop height

    Returns:
        Tuple of (render_width, render_height), each at least the crop size
    """
    if orig_width > orig_height:
        # Original is wide
        width = _ceil_div(crop_height * orig_width, orig_height)
        height = crop_height
    elif orig_height > orig_width:
        # Original is tall
        width = crop_width
        height = _ceil_div(crop_width * orig_height, orig_width)
    else:
        width = height = crop_width

    # Crop width short of the requested width leaves black columns: use the width scale.
    if width < crop_width:
        width = crop_width
        height = _ceil_div(crop_width * orig_height, orig_width)

    # Same for rows when the box is taller than the width scale can cover.
    if height < crop_height:
        width = _ceil_div(crop_height * orig_width, orig_height)
        height = crop_height

    return width, height


def crop_window(render_width: int, render_height: int, crop_width: int, crop_height: int, mode: Mode) -> CropRect:
    """Crop window inside the cover render: horizontally centered, vertical origin per mode."""
    x = render_width / 2 - crop_width / 2

    if mode == Mode.CROP_TOP:
        y = 0.0
    elif mode == Mode.CROP_BOTTOM:
        y = float(render_height - crop_height)
    else:
        y = render_height / 2 - crop_height / 2

    return CropRect(x=x, y=y, width=crop_width, height=crop_height)


def compute_transform(
    orig_width: int,
    orig_height: int,
    width: int,
    height: int,
    mode: Union[Mode, str],
) -> TransformSpec:
    """
    Compute render size and crop window for a derivative.

    Args:
        orig_width: Source width in pixels
        orig_height: Source height in pixels
        width: Requested width
        height: Requested height
        mode: Output mode

    Returns:
        TransformSpec for the renderer

    Raises:
        InvalidModeError: If mode is unknown
    """
    mode = parse_mode(mode)

    if mode.is_crop:
        render_width, render_height = cover(orig_width, orig_height, width, height)
        return TransformSpec(
            render_width=render_width,
            render_height=render_height,
            crop=crop_window(render_width, render_height, width, height, mode),
        )

    if mode == Mode.FIT:
        render_width, render_height = fit_within(orig_width, orig_height, width, height)
    elif mode == Mode.FIT_X:
        render_width, render_height = fit_width(orig_width, orig_height, width)
    else:
        render_width, render_height = fit_height(orig_width, orig_height, height)

    return TransformSpec(render_width=render_width, render_height=render_height)
