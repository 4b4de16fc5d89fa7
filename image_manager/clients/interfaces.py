"""
Backend-agnostic interfaces for the codec and the derivative store.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image

from image_manager.models import ImageInfo


class IImageCodec(ABC):
    """Interface for image codecs."""

    @abstractmethod
    def probe(self, path: Path) -> ImageInfo:
        """
        Read MIME type and dimensions without decoding pixel data.

        Args:
            path: Source image path

        Returns:
            ImageInfo for the source

        Raises:
            UnsupportedFormatError: If the type can't be detected
        """
        pass

    @abstractmethod
    def decode(self, path: Path) -> Image.Image:
        """
        Decode a source image into a pixel buffer.

        Raises:
            DecodeError: If the pixel data can't be read
        """
        pass

    @abstractmethod
    def encode(self, image: Image.Image, format: str, quality: int, exif: Optional[bytes] = None) -> bytes:
        """
        Encode a pixel buffer.

        Args:
            image: Pixel buffer
            format: Output format name or extension (jpg, png, gif, webp)
            quality: Encoder quality 0-100
            exif: Optional EXIF block to embed (JPEG/WEBP)

        Returns:
            Encoded bytes

        Raises:
            UnsupportedFormatError: If the format has no encoder
            EncodeError: If encoding fails
        """
        pass


class ICacheStore(ABC):
    """Interface for the store holding sources and derivatives."""

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """True for regular files only."""
        pass

    @abstractmethod
    def is_directory(self, path: Path) -> bool:
        pass

    @abstractmethod
    def read(self, path: Path) -> bytes:
        pass

    @abstractmethod
    def write(self, path: Path, data: bytes, mode: Optional[int] = None) -> None:
        """
        Write a file so readers see either the old or the new content, never a partial one.

        Args:
            path: Target path
            data: File content
            mode: Permission bits to set; existing/default bits when omitted
        """
        pass

    @abstractmethod
    def make_directory(self, path: Path, mode: int) -> None:
        """
        Create a single directory. An existing directory is not an error.

        Raises:
            DirectoryCreateError: If the directory can't be created
        """
        pass

    @abstractmethod
    def walk(self, root: Path) -> Iterator[Path]:
        """Yield every file below root, recursively."""
        pass

    @abstractmethod
    def delete(self, path: Path) -> None:
        pass
