"""
Local filesystem store for sources and derivatives.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator, Optional

from image_manager.clients.interfaces import ICacheStore
from image_manager.utils.errors import DirectoryCreateError

logger = logging.getLogger("image_manager")


class FileSystemCacheStore(ICacheStore):
    """Store backed by the local filesystem. The directory tree is the cache index."""

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_directory(self, path: Path) -> bool:
        return Path(path).is_dir()

    def read(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def write(self, path: Path, data: bytes, mode: Optional[int] = None) -> None:
        path = Path(path)
        # Temp file lives next to the target so os.replace stays on one filesystem
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if mode is not None:
                os.chmod(tmp_path, mode)
            elif path.exists():
                os.chmod(tmp_path, path.stat().st_mode & 0o7777)
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"StoreWrite path={path} sizeBytes={len(data)}")

    def make_directory(self, path: Path, mode: int) -> None:
        try:
            os.mkdir(path, mode)
        except FileExistsError:
            # Another caller won the race
            if not Path(path).is_dir():
                raise DirectoryCreateError(f"Error creating directory: {path} exists and is not a directory")
        except OSError as e:
            logger.error(f"DirectoryCreateFailed path={path} error={type(e).__name__}")
            raise DirectoryCreateError(f"Error creating directory: {path}", details={"reason": str(e)})

    def walk(self, root: Path) -> Iterator[Path]:
        for dirpath, _dirnames, filenames in os.walk(root):
            for filename in filenames:
                yield Path(dirpath) / filename

    def delete(self, path: Path) -> None:
        Path(path).unlink(missing_ok=True)
