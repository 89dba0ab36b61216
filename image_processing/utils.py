"""Utility helpers for encoding images for Gemini and back."""

from __future__ import annotations

import base64
import io
import re
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .exceptions import UnsupportedImageTypeError

DEFAULT_DOWNLOAD_NAME = "processed-image.png"

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/heic": ".heic",
    "image/heif": ".heif",
}


@dataclass(slots=True)
class InlineImage:
    """Image bytes plus MIME type, the unit Gemini accepts as inline data."""

    data: bytes
    mime_type: str


def normalize_file_name(path: str | Path) -> str:
    """Normalize an arbitrary file path or name into a filesystem friendly stem.

    The result is lowercase, stripped of leading/trailing underscores, and only
    contains ASCII letters, numbers, hyphens, and underscores.
    """

    stem = Path(path).stem
    normalized = re.sub(r"[^a-zA-Z0-9_-]+", "_", stem).strip("_").lower()
    return normalized or "image"


def detect_mime_type(data: bytes, declared: str | None = None) -> str:
    """Return the image MIME type for ``data``.

    A declared ``image/*`` content type wins. Anything else (missing,
    ``application/octet-stream``) is sniffed with Pillow.

    Raises
    ------
    UnsupportedImageTypeError
        If the bytes cannot be identified as an image.
    """

    declared = (declared or "").split(";")[0].strip().lower()
    if declared.startswith("image/"):
        return declared

    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedImageTypeError(f"Unsupported file type '{declared or 'unknown'}'") from exc

    mime_type = Image.MIME.get(image_format or "")
    if not mime_type:
        raise UnsupportedImageTypeError(f"Unsupported image format '{image_format}'")
    return mime_type


def file_to_inline_part(data: bytes, mime_type: str | None = None) -> InlineImage:
    if not data:
        raise UnsupportedImageTypeError("Image file is empty")
    return InlineImage(data=bytes(data), mime_type=detect_mime_type(data, mime_type))


def normalize_inline_data(data: bytes | str) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        return base64.b64decode(data)
    raise TypeError(f"Unsupported inline data type: {type(data)}")


def to_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type.lower(), ".png")


def download_filename(original_name: str | None, mime_type: str) -> str:
    """Name offered to the browser for the edited image."""

    if not original_name:
        return DEFAULT_DOWNLOAD_NAME
    stem = normalize_file_name(original_name)
    return f"{stem}-edited{extension_for(mime_type)}"


def ensure_rgba(image: Image.Image) -> Image.Image:
    """Ensure that a Pillow image is in RGBA mode."""

    if image.mode == "RGBA":
        return image
    return image.convert("RGBA")


def has_transparency(data: bytes) -> bool:
    """Return True if the encoded image has at least one non-opaque pixel."""

    with Image.open(io.BytesIO(data)) as image:
        if image.mode not in ("RGBA", "LA", "PA") and "transparency" not in image.info:
            return False
        alpha = ensure_rgba(image).getchannel("A")
        low, _ = alpha.getextrema()
    return low < 255


def image_to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
