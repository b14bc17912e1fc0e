"""
Image loading and validation for uploads and remove.bg results.

Uploaded files are checked against the size limit and MIME type, then
decoded once with Pillow so that only real images reach the removal
endpoint. Both the source and the cutout are kept as raw bytes and rendered
as ``data:`` URLs for previews.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError

SIZE_LIMIT_MESSAGE = "File size should be less than 5MB for free API"
NOT_AN_IMAGE_MESSAGE = "Please select an image file"
INVALID_IMAGE_MESSAGE = "Invalid image data"


@dataclass(frozen=True)
class UploadedFile:
    """A file handle as selected by the user."""

    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    mime_type: str
    size: Tuple[int, int]  # (width, height)
    filename: Optional[str] = None

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class SourceImage(EncodedImage):
    """The user-selected image."""


class ResultImage(EncodedImage):
    """The background-removed image returned by remove.bg."""


def check_upload(upload: UploadedFile, max_bytes: int) -> None:
    """Reject oversized or non-image uploads before any decoding happens."""
    if upload.size > max_bytes:
        raise ValidationError(SIZE_LIMIT_MESSAGE)
    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise ValidationError(NOT_AN_IMAGE_MESSAGE)


def _probe(data: bytes) -> Tuple[str, Tuple[int, int]]:
    """Decode enough of the payload to learn its format and dimensions."""
    if not data:
        raise ValidationError(INVALID_IMAGE_MESSAGE)
    try:
        with Image.open(BytesIO(data)) as image:
            image.verify()
        # verify() leaves the image unusable, so reopen for metadata.
        with Image.open(BytesIO(data)) as image:
            mime = Image.MIME.get(image.format or "", "application/octet-stream")
            return mime, image.size
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise ValidationError(INVALID_IMAGE_MESSAGE) from exc


def decode_source(upload: UploadedFile) -> SourceImage:
    """
    Decode an accepted upload into a SourceImage.

    The declared content type is trusted only as far as ``image/*``; the
    stored MIME type comes from the decoded format.
    """
    mime, size = _probe(upload.data)
    return SourceImage(data=upload.data, mime_type=mime, size=size, filename=upload.filename)


def decode_result(payload: bytes, filename: Optional[str] = None) -> ResultImage:
    """
    Decode the removal endpoint's response body into a ResultImage.

    Raises:
        ValidationError: when the payload is not an image.
    """
    mime, size = _probe(payload)
    return ResultImage(data=payload, mime_type=mime, size=size, filename=filename)
