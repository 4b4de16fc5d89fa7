"""
Cascading removal of a source image and its derivatives.
"""
import logging
import re
from pathlib import Path
from typing import Iterable, List, Union

from image_manager.clients.interfaces import ICacheStore
from image_manager.models import Mode
from image_manager.utils.filenames import get_extension

logger = logging.getLogger("image_manager")

_SIZE_DIR = re.compile(r"\d+-\d+")
_MODE_DIRS = {mode.value for mode in Mode}


def is_cache_directory(directory: Path) -> bool:
    """True for ``<width>-<height>/<mode>`` directories."""
    return directory.name in _MODE_DIRS and bool(_SIZE_DIR.fullmatch(directory.parent.name))


class CascadingDeleter:
    """Finds derivatives by filename alone: no index is consulted."""

    def __init__(self, store: ICacheStore, output_extensions: Iterable[str]):
        """
        Initialize deleter.

        Args:
            store: Store holding sources and derivatives
            output_extensions: Extensions a converted derivative may carry
        """
        self._store = store
        self._output_extensions = {ext.lower() for ext in output_extensions}

    def matches(self, source: Path, candidate: Path) -> bool:
        if candidate.name == source.name:
            return True
        # Format conversions keep the stem and swap the extension
        return (
            candidate.stem == source.stem
            and get_extension(candidate) in self._output_extensions
            and is_cache_directory(candidate.parent)
        )

    def delete(self, source_path: Union[str, Path]) -> List[Path]:
        """
        Delete the source and every derivative below its directory.

        Args:
            source_path: Source image path

        Returns:
            Paths that were removed
        """
        source = Path(source_path).absolute()
        root = source.parent
        if not self._store.is_directory(root):
            logger.warning(f"CascadeDelete skipped, missing directory path={root}")
            return []

        removed = []
        for candidate in self._store.walk(root):
            if self.matches(source, candidate):
                self._store.delete(candidate)
                removed.append(candidate)

        logger.info(f"CascadeDelete source={source} removed={len(removed)}")
        return removed
