"""
Image endpoints: derivative resolution, cascading delete and uploads.
"""
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from image_manager.config import settings
from image_manager.models import DeleteResponse, DerivativeResponse, Mode, UploadResponse
from image_manager.services.image_manager import create_image_manager
from image_manager.utils.errors import APIError, ErrorCodes
from image_manager.utils.filenames import unique_filename

logger = logging.getLogger("image_manager")

router = APIRouter(tags=["images"])


def _resolve_public_path(path: str) -> Path:
    """
    Map a client path onto the public root.

    Raises:
        APIError: If the path escapes the public root
    """
    root = settings.PUBLIC_ROOT.resolve()
    candidate = (root / path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        raise APIError(
            code=ErrorCodes.INVALID_INPUT,
            message="Path must stay inside the public root.",
            http_status=status.HTTP_400_BAD_REQUEST,
        )
    return candidate


def _validate_file(file: UploadFile) -> None:
    """
    Validate uploaded file.

    Raises:
        APIError: If file is invalid
    """
    if not file.filename:
        raise APIError(
            code=ErrorCodes.INVALID_INPUT,
            message="File is required.",
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    content_type = file.content_type
    if content_type not in settings.ALLOWED_MIME_TYPES:
        raise APIError(
            code=ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
            message=f"Unsupported file type. Allowed types: {', '.join(settings.ALLOWED_MIME_TYPES)}",
            http_status=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        )


async def _save_uploaded_file(file: UploadFile, destination: Path) -> tuple[Path, int]:
    """
    Save uploaded file under a unique, slugged name.

    Args:
        file: Uploaded file
        destination: Target directory

    Returns:
        Tuple of (file_path, file_size)

    Raises:
        APIError: If file is too large or save fails
    """
    destination.mkdir(parents=True, exist_ok=True)
    file_path = destination / unique_filename(file.filename, destination)
    file_size = 0

    try:
        # Read file in chunks to check size
        with open(file_path, "wb") as f:
            while chunk := await file.read(8192):
                file_size += len(chunk)
                if file_size > settings.MAX_UPLOAD_SIZE_BYTES:
                    raise APIError(
                        code=ErrorCodes.PAYLOAD_TOO_LARGE,
                        message=f"File size exceeds maximum allowed size of {settings.MAX_UPLOAD_MB} MB.",
                        http_status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    )
                f.write(chunk)

        return file_path, file_size
    except APIError:
        file_path.unlink(missing_ok=True)
        raise
    except OSError as e:
        file_path.unlink(missing_ok=True)
        logger.error(f"Failed to save uploaded file: {e}", exc_info=True)
        raise APIError(
            code=ErrorCodes.INTERNAL_ERROR,
            message="Failed to save uploaded file.",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


@router.get("/images/derivative", response_model=DerivativeResponse)
def get_derivative(
    path: str = Query(..., description="Source image path relative to the public root"),
    width: int = Query(..., gt=0),
    height: int = Query(..., gt=0),
    mode: Mode = Query(...),
    quality: Optional[int] = Query(default=None, ge=0, le=100),
    format: Optional[str] = Query(default=None, description="Convert to gif, jpg, jpeg, png or webp"),
):
    """
    Resolve a derivative, generating it on a cache miss.

    Falls back to the placeholder image when the source can't be served; the
    reasons are listed in `errors`.
    """
    source = _resolve_public_path(path)
    manager = create_image_manager()

    public_path = manager.resolve(source, width, height, mode, quality=quality, output_format=format)
    errors = manager.errors()

    if public_path is None:
        raise APIError(
            code=ErrorCodes.IMAGE_UNAVAILABLE,
            message="Image could not be served and no placeholder is available.",
            http_status=status.HTTP_404_NOT_FOUND,
            details={"errors": errors},
        )

    return DerivativeResponse(publicPath=public_path, errors=errors)


@router.delete("/images", response_model=DeleteResponse)
def delete_image(path: str = Query(..., description="Source image path relative to the public root")):
    """
    Delete a source image and every derivative generated from it.
    """
    source = _resolve_public_path(path)
    manager = create_image_manager()

    removed = manager.delete(source)
    return DeleteResponse(deleted=[manager.resolver.public_source_path(p) for p in removed])


@router.post("/images", status_code=status.HTTP_201_CREATED, response_model=UploadResponse)
async def upload_image(
    file: UploadFile = File(...),
    directory: Optional[str] = Form(default=None),
):
    """
    Store a new source image under a unique, slugged filename.
    """
    _validate_file(file)
    destination = _resolve_public_path(directory) if directory else settings.upload_path

    file_path, file_size = await _save_uploaded_file(file, destination)
    manager = create_image_manager()

    logger.info(f"ImageUploaded path={file_path} sizeBytes={file_size}")
    return UploadResponse(
        filename=file_path.name,
        publicPath=manager.resolver.public_source_path(file_path),
        sizeBytes=file_size,
    )
