"""
Pydantic models for API request/response schemas and the internal transform pipeline.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Mode(str, Enum):
    """Output-shaping strategy for a derivative."""

    CROP = "crop"
    CROP_TOP = "crop-top"
    CROP_BOTTOM = "crop-bottom"
    FIT = "fit"
    FIT_X = "fit-x"
    FIT_Y = "fit-y"

    @property
    def is_crop(self) -> bool:
        return self in (Mode.CROP, Mode.CROP_TOP, Mode.CROP_BOTTOM)


class AttemptState(str, Enum):
    """Fallback state machine for a single resolve call."""

    ORIGINAL = "original"
    FALLBACK = "fallback"
    FAILED = "failed"


class ImageInfo(BaseModel):
    """Metadata probed from a source image without decoding its pixels."""

    mime: str
    width: int
    height: int
    format: str = Field(description="Pillow format name, e.g. JPEG")


class CropRect(BaseModel):
    """Second-phase crop window inside the intermediate render."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: int
    height: int


class TransformSpec(BaseModel):
    """Geometry for one derivative: render size plus optional crop window."""

    model_config = ConfigDict(frozen=True)

    render_width: int
    render_height: int
    crop: Optional[CropRect] = None

    @property
    def output_size(self) -> tuple[int, int]:
        if self.crop is not None:
            return self.crop.width, self.crop.height
        return self.render_width, self.render_height


class TransformRequest(BaseModel):
    """A single derivative request."""

    model_config = ConfigDict(frozen=True)

    source_path: Path
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    mode: Mode
    quality: int = Field(default=90, ge=0, le=100)
    output_format: Optional[str] = None


class TransformContext(BaseModel):
    """Per-call state threaded through ImageManager instead of living on the instance."""

    model_config = ConfigDict(frozen=True)

    request: TransformRequest
    source_path: Path
    state: AttemptState = AttemptState.ORIGINAL

    @property
    def output_format(self) -> Optional[str]:
        # The placeholder is always served in its own format.
        if self.state == AttemptState.FALLBACK:
            return None
        return self.request.output_format


class CachePath(BaseModel):
    """Deterministic location of a derivative, on disk and as a public path."""

    model_config = ConfigDict(frozen=True)

    directory: Path
    filesystem_path: Path
    public_path: str


class ErrorInfo(BaseModel):
    """Error information for failed requests."""

    code: str
    message: str
    retryable: bool = False
    details: Optional[dict] = None


class DerivativeResponse(BaseModel):
    """Response for GET /v1/images/derivative."""

    publicPath: str
    errors: List[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    """Response for DELETE /v1/images."""

    deleted: List[str] = Field(default_factory=list)


class UploadResponse(BaseModel):
    """Response for POST /v1/images (201 Created)."""

    filename: str
    publicPath: str
    sizeBytes: int
