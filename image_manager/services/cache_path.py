"""
Deterministic cache locations for derivatives.

A derivative of ``<dir>/<name>`` lives at ``<dir>/<width>-<height>/<mode>/<name>``.
Only the directory and, for format conversions, the extension differ from the
source, so the filename stem always identifies the source.
"""
import logging
import os
from pathlib import Path
from typing import Optional, Union

from image_manager.clients.interfaces import ICacheStore
from image_manager.models import CachePath, Mode
from image_manager.services.geometry import parse_mode
from image_manager.utils.errors import UnsupportedFormatError
from image_manager.utils.filenames import get_extension

logger = logging.getLogger("image_manager")


def _absolute(path: Union[str, Path]) -> Path:
    return Path(os.path.abspath(path))


def derivative_filename(filename: str, output_format: Optional[str] = None) -> str:
    """
    Filename of a derivative, with the extension swapped when converting formats.

    Raises:
        UnsupportedFormatError: If output_format is not a plain extension
    """
    if not output_format or get_extension(filename) == output_format.lower():
        return filename
    if not output_format.isalnum():
        raise UnsupportedFormatError(f"{output_format} images are not supported")
    return Path(filename).with_suffix(f".{output_format.lower()}").name


class CachePathResolver:
    """Maps (source, size, mode, format) to a CachePath and prepares its directories."""

    def __init__(self, store: ICacheStore, public_root: Union[str, Path], directory_mode: int = 0o777):
        """
        Initialize resolver.

        Args:
            store: Store used to create directories
            public_root: Root directory public paths are relative to
            directory_mode: Permission bits for created directories
        """
        self._store = store
        self._public_root = _absolute(public_root)
        self._directory_mode = directory_mode

    @property
    def public_root(self) -> Path:
        return self._public_root

    def url_base(self, directory: Union[str, Path]) -> str:
        """
        Public path of a directory.

        Directories outside the public root keep their absolute POSIX path.
        """
        directory = _absolute(directory)
        try:
            relative = directory.relative_to(self._public_root)
        except ValueError:
            return directory.as_posix()
        if relative == Path("."):
            return ""
        return "/" + relative.as_posix()

    def public_source_path(self, source_path: Union[str, Path]) -> str:
        source = _absolute(source_path)
        return f"{self.url_base(source.parent)}/{source.name}"

    def resolve(
        self,
        source_path: Union[str, Path],
        width: int,
        height: int,
        mode: Union[Mode, str],
        output_format: Optional[str] = None,
    ) -> CachePath:
        """
        Compute where the derivative lives. Pure: touches nothing on disk.

        Args:
            source_path: Source image path
            width: Requested width
            height: Requested height
            mode: Output mode
            output_format: Optional output format/extension

        Returns:
            CachePath for the derivative
        """
        source = _absolute(source_path)
        mode = parse_mode(mode)
        relative_dir = f"{width}-{height}/{mode.value}"
        directory = source.parent / f"{width}-{height}" / mode.value
        filename = derivative_filename(source.name, output_format)

        return CachePath(
            directory=directory,
            filesystem_path=directory / filename,
            public_path=f"{self.url_base(source.parent)}/{relative_dir}/{filename}",
        )

    def ensure_directories(self, cache_path: CachePath) -> None:
        """
        Create the size directory, then the mode directory.

        Raises:
            DirectoryCreateError: If either directory can't be created
        """
        for directory in (cache_path.directory.parent, cache_path.directory):
            if not self._store.is_directory(directory):
                self._store.make_directory(directory, self._directory_mode)
                logger.debug(f"CacheDirectoryCreated path={directory}")

    @staticmethod
    def get_path(cache_path: CachePath, from_root: bool = False) -> str:
        """Filesystem path when from_root is true, public path otherwise."""
        if from_root:
            return str(cache_path.filesystem_path)
        return cache_path.public_path
