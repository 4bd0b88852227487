"""
Receipt Image Preparation

Checks and normalizes an uploaded receipt photo before it is sent
to the assistant for extraction.

CRITICAL: Nothing leaves the process for a file we cannot open.
Size, decodability and format are checked locally first, so a bad
upload never costs a model call.

The photo is downscaled to the configured longest side and
re-encoded as JPEG; receipts are text on paper, so this keeps them
legible while bounding the request size.
"""

import base64
from io import BytesIO
from pathlib import PurePath
from typing import Optional

import structlog
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

from taxgo.config import AppSettings, get_settings


logger = structlog.get_logger(__name__)

# Pillow format name -> extensions it may arrive with
_PIL_FORMAT_EXTENSIONS = {
    "JPEG": {"jpg", "jpeg"},
    "PNG": {"png"},
    "WEBP": {"webp"},
}

OUTPUT_MIME_TYPE = "image/jpeg"
JPEG_QUALITY = 90


class ImageValidationError(Exception):
    """The upload cannot be used as a receipt photo."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"{filename}: {reason}")


class ReceiptImage(BaseModel):
    """A receipt photo ready for the extraction request."""

    base64_data: str
    mime_type: str = OUTPUT_MIME_TYPE
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    original_format: str
    quality_issues: list[str] = Field(
        default_factory=list,
        description="Non-blocking hints, e.g. too dark or low resolution"
    )


def assess_image_quality(img: Image.Image) -> list[str]:
    """
    Simple heuristics on resolution, exposure and contrast.

    Returns human-readable issues; an empty list means nothing stood out.
    """
    issues = []
    width, height = img.size

    min_dimension = min(width, height)
    if min_dimension < 300:
        issues.append("Ảnh có độ phân giải quá thấp, chữ có thể không đọc được")

    gray = img if img.mode == "L" else img.convert("L")
    histogram = gray.histogram()
    total_pixels = sum(histogram) or 1

    if sum(histogram[:50]) / total_pixels > 0.7:
        issues.append("Ảnh quá tối, hãy chụp ở nơi đủ sáng")
    if sum(histogram[200:]) / total_pixels > 0.7:
        issues.append("Ảnh bị lóa sáng, hãy đổi góc chụp")

    # Range holding the middle 90% of pixels
    cumsum = 0
    low_percentile: Optional[int] = None
    high_percentile = 255
    for value, count in enumerate(histogram):
        cumsum += count
        if low_percentile is None and cumsum >= total_pixels * 0.05:
            low_percentile = value
        if cumsum >= total_pixels * 0.95:
            high_percentile = value
            break
    if high_percentile - (low_percentile or 0) < 50:
        issues.append("Ảnh có độ tương phản thấp")

    return issues


def _extension(filename: str) -> str:
    return PurePath(filename).suffix.lstrip(".").lower()


def prepare_receipt_image(
    image_bytes: bytes,
    filename: str,
    settings: Optional[AppSettings] = None,
) -> ReceiptImage:
    """
    Validate and normalize an uploaded receipt photo.

    Raises:
        ImageValidationError: empty or oversized upload, undecodable
            data, or a format outside the configured list
    """
    settings = settings or get_settings().app
    allowed = set(settings.supported_formats_list)

    if not image_bytes:
        raise ImageValidationError(filename, "Tệp rỗng")
    if len(image_bytes) > settings.max_upload_size_bytes:
        raise ImageValidationError(
            filename,
            f"Tệp vượt quá {settings.max_upload_size_mb} MB",
        )

    extension = _extension(filename)
    if extension and extension not in allowed:
        raise ImageValidationError(filename, f"Định dạng .{extension} không được hỗ trợ")

    try:
        with Image.open(BytesIO(image_bytes)) as check:
            check.verify()
        # verify() leaves the image unusable; reopen to read pixels
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise ImageValidationError(filename, "Không đọc được ảnh") from e

    image_format = (img.format or "").upper()
    if not _PIL_FORMAT_EXTENSIONS.get(image_format, set()) & allowed:
        raise ImageValidationError(
            filename,
            f"Định dạng {image_format or 'không xác định'} không được hỗ trợ",
        )

    if img.mode != "RGB":
        img = img.convert("RGB")
    img.thumbnail((settings.max_image_dimension, settings.max_image_dimension))

    issues = assess_image_quality(img)

    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=JPEG_QUALITY)

    logger.info(
        "receipt_image_prepared",
        filename=filename,
        original_format=image_format,
        width=img.width,
        height=img.height,
        quality_issues=len(issues),
    )

    return ReceiptImage(
        base64_data=base64.b64encode(buffer.getvalue()).decode("ascii"),
        mime_type=OUTPUT_MIME_TYPE,
        width=img.width,
        height=img.height,
        original_format=image_format,
        quality_issues=issues,
    )
