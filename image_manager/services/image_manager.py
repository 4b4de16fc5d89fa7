"""
On-demand derivative images with a filesystem cache.

ImageManager.resolve turns a source image into a resized/cropped derivative,
stores it at a deterministic path next to the source and returns its public
path. Later calls with the same arguments are served from disk without any
decoding. Recoverable failures fall back once to a placeholder image and are
reported through errors() instead of being raised.
"""
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

from PIL import Image

from image_manager.clients.filesystem_store import FileSystemCacheStore
from image_manager.clients.interfaces import ICacheStore, IImageCodec
from image_manager.clients.pillow_codec import SUPPORTED_MIME_TYPES, PillowCodec
from image_manager.config import settings
from image_manager.models import AttemptState, Mode, TransformContext, TransformRequest
from image_manager.services.cache_path import CachePathResolver
from image_manager.services.cascade import CascadingDeleter
from image_manager.services.geometry import compute_transform, parse_mode
from image_manager.services.orientation import correct_orientation, reset_orientation_exif
from image_manager.services.transform import render
from image_manager.utils.errors import (
    EncodeError,
    ImageManagerError,
    InvalidInputError,
    UnsupportedFormatError,
)
from image_manager.utils.filenames import get_extension
from image_manager.utils.logging import trace_calls

logger = logging.getLogger("image_manager")

ERROR_IMAGE_NOT_FOUND = "Error image not found."


class ImageManager:
    """Resolves, caches and deletes derivative images."""

    def __init__(
        self,
        error_filename: Optional[str] = None,
        *,
        error_image_path: Optional[Union[str, Path]] = None,
        public_root: Optional[Union[str, Path]] = None,
        codec: Optional[IImageCodec] = None,
        store: Optional[ICacheStore] = None,
        file_mode: Optional[int] = None,
        directory_mode: Optional[int] = None,
        output_formats: Optional[Iterable[str]] = None,
    ):
        """
        Initialize image manager. Every argument defaults to the app settings.

        Args:
            error_filename: Placeholder filename inside ERROR_IMAGE_DIR
            error_image_path: Full placeholder path (overrides error_filename)
            public_root: Root that public paths are relative to
            codec: Image codec
            store: Store holding sources and derivatives
            file_mode: Permission bits for written derivatives
            directory_mode: Permission bits for created cache directories
            output_formats: Accepted output formats/extensions
        """
        public_root = Path(public_root) if public_root is not None else settings.PUBLIC_ROOT
        if error_image_path is not None:
            self.error_image_path = Path(os.path.abspath(error_image_path))
        else:
            self.error_image_path = Path(
                os.path.abspath(public_root / settings.ERROR_IMAGE_DIR / (error_filename or settings.ERROR_IMAGE_FILENAME))
            )

        self._codec = codec or PillowCodec()
        self._store = store or FileSystemCacheStore()
        self._file_mode = settings.CACHE_FILE_MODE if file_mode is None else file_mode
        self._output_formats = {
            fmt.lower() for fmt in (output_formats if output_formats is not None else settings.SUPPORTED_OUTPUT_FORMATS)
        }
        self._resolver = CachePathResolver(
            self._store,
            public_root,
            settings.CACHE_DIR_MODE if directory_mode is None else directory_mode,
        )
        self._deleter = CascadingDeleter(self._store, self._output_formats)
        self._errors: List[str] = []

    @property
    def resolver(self) -> CachePathResolver:
        return self._resolver

    def errors(self) -> List[str]:
        """Return and clear the error messages recorded by the last operation."""
        errors, self._errors = self._errors, []
        return errors

    @trace_calls
    def resolve(
        self,
        source_path: Union[str, Path, None],
        width: int,
        height: int,
        mode: Union[Mode, str],
        quality: Optional[int] = None,
        output_format: Optional[str] = None,
    ) -> Optional[str]:
        """
        Public path of the derivative, generating it on a cache miss.

        Args:
            source_path: Source image path
            width: Requested width in pixels
            height: Requested height in pixels
            mode: crop, crop-top, crop-bottom, fit, fit-x or fit-y
            quality: Encoder quality 0-100 (default from settings)
            output_format: Convert to this format (gif, jpg, jpeg, png, webp)

        Returns:
            Public path of the derivative (or of the placeholder's derivative),
            None when not even the placeholder could be served

        Raises:
            InvalidModeError: If mode is unknown
            DirectoryCreateError: If a cache directory can't be created
            pydantic.ValidationError: If width/height/quality are out of range
        """
        self._errors = []
        request = TransformRequest(
            source_path=Path(source_path) if source_path else Path(""),
            width=width,
            height=height,
            mode=parse_mode(mode),
            quality=settings.DEFAULT_QUALITY if quality is None else quality,
            output_format=output_format,
        )
        context = TransformContext(request=request, source_path=request.source_path)

        while context.state != AttemptState.FAILED:
            try:
                return self._attempt(context)
            except ImageManagerError as e:
                if not e.recoverable:
                    raise
                self._errors.append(e.message)
                logger.warning(
                    f"ResolveFallback state={context.state.value} source={context.source_path} "
                    f"code={e.code} message={e.message}"
                )
                context = self._next_context(context)

        return None

    @trace_calls
    def delete(self, source_path: Union[str, Path]) -> List[Path]:
        """
        Delete a source image and every derivative generated from it.

        Returns:
            Paths that were removed
        """
        self._errors = []
        return self._deleter.delete(source_path)

    def _next_context(self, context: TransformContext) -> TransformContext:
        """Advance the fallback state machine after a recoverable error."""
        if context.state == AttemptState.ORIGINAL and self._store.exists(self.error_image_path):
            return context.model_copy(
                update={"state": AttemptState.FALLBACK, "source_path": self.error_image_path}
            )
        if context.state == AttemptState.ORIGINAL:
            self._errors.append(ERROR_IMAGE_NOT_FOUND)
            logger.error(f"ErrorImageMissing path={self.error_image_path}")
        return context.model_copy(update={"state": AttemptState.FAILED})

    def _attempt(self, context: TransformContext) -> str:
        """One pass of the pipeline for the context's current source."""
        request = context.request
        if context.source_path == Path(""):
            raise InvalidInputError("No image file given")

        source = Path(os.path.abspath(context.source_path))
        if self._store.is_directory(source):
            raise InvalidInputError(f"Image path is a directory: {source}")
        if not self._store.exists(source):
            raise InvalidInputError(f"Image file not found: {source}")

        # Checked before the format can reach a filename
        output_format = context.output_format
        if output_format and output_format.lower() not in self._output_formats:
            raise UnsupportedFormatError(f"{output_format} images are not supported")

        cache_path = self._resolver.resolve(source, request.width, request.height, request.mode, output_format)

        if self._store.exists(cache_path.filesystem_path):
            logger.debug(f"CacheHit path={cache_path.public_path}")
            return cache_path.public_path

        # Vector images are size independent
        if get_extension(source.name) == "svg":
            return self._resolver.public_source_path(source)

        info = self._codec.probe(source)
        source_format = SUPPORTED_MIME_TYPES.get(info.mime)
        if source_format is None:
            raise UnsupportedFormatError(f"{info.mime} images are not supported")

        logger.info(
            f"CacheMiss source={source} dims={info.width}x{info.height} "
            f"target={request.width}x{request.height} mode={request.mode.value}"
        )
        self._resolver.ensure_directories(cache_path)

        image = self._codec.decode(source)
        if source_format == "JPEG":
            image = self._correct_orientation(source, image, request.quality)

        spec = compute_transform(image.width, image.height, request.width, request.height, request.mode)
        derivative = render(image, spec)
        data = self._codec.encode(derivative, output_format or source_format, request.quality)

        try:
            self._store.write(cache_path.filesystem_path, data, mode=self._file_mode)
        except OSError as e:
            raise EncodeError(f"Failed to write derivative {cache_path.filesystem_path}: {e}")

        logger.info(
            f"DerivativeWritten path={cache_path.public_path} "
            f"dims={derivative.width}x{derivative.height} sizeBytes={len(data)}"
        )
        return cache_path.public_path

    def _correct_orientation(self, source: Path, image: Image.Image, quality: int) -> Image.Image:
        """
        Upright a camera-rotated JPEG and persist it over the source.

        The rewritten source carries orientation tag 1, so the correction runs once.
        """
        correction = correct_orientation(image)
        if not correction.changed:
            return image

        data = self._codec.encode(correction.image, "JPEG", quality, exif=reset_orientation_exif(image))
        try:
            self._store.write(source, data)
        except OSError as e:
            raise EncodeError(f"Failed to rewrite corrected source {source}: {e}")

        logger.info(
            f"OrientationCorrected source={source} tag={correction.tag} "
            f"rotation={correction.rotation} mirror={correction.mirror}"
        )
        return correction.image


def create_image_manager() -> ImageManager:
    """Build an ImageManager from the app settings. One instance per caller keeps error lists apart."""
    return ImageManager(public_root=settings.PUBLIC_ROOT.resolve())
