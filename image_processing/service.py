"""Background edit service coordinating prompt building, Gemini and rembg."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from PIL import Image, UnidentifiedImageError

from .exceptions import BackgroundRemovalError, InvalidEditRequestError
from .gemini import GeneratedImage
from .prompts import EditMode, build_prompt, parse_mode
from .utils import (
    InlineImage,
    download_filename,
    ensure_rgba,
    file_to_inline_part,
    has_transparency,
    image_to_png_bytes,
    to_data_uri,
)

logger = logging.getLogger(__name__)

RemoverFunc = Callable[[bytes], "Image.Image | bytes | bytearray"]

MISSING_IMAGE_MESSAGE = "Please upload the original image."
MISSING_BACKGROUND_MESSAGE = "Please upload a background image."


class ImageGenerator(Protocol):
    def generate(self, prompt: str, image: InlineImage, background: InlineImage | None = None) -> GeneratedImage:
        ...


@dataclass(slots=True)
class UploadedImage:
    """Raw bytes of a file the user picked, with what the browser said about it."""

    data: bytes
    filename: str | None = None
    content_type: str | None = None


@dataclass(slots=True)
class EditRequest:
    mode: EditMode
    image: UploadedImage | None
    prompt: str | None = None
    background: UploadedImage | None = None


@dataclass(slots=True)
class EditResult:
    mode: EditMode
    image_data: bytes
    mime_type: str
    download_name: str
    text: str = ""
    cleaned: bool = False

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.image_data, self.mime_type)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "image": self.data_uri,
            "mime_type": self.mime_type,
            "download_name": self.download_name,
            "text": self.text,
            "cleaned": self.cleaned,
        }


class BackgroundEditService:
    """Turn one edit request into one Gemini call and an image result."""

    def __init__(
        self,
        generator: ImageGenerator,
        remover: RemoverFunc | None = None,
        transparent_cleanup: bool = True,
        rembg_model_name: str = "u2net",
    ) -> None:
        self.generator = generator
        self.transparent_cleanup = transparent_cleanup
        self.rembg_model_name = rembg_model_name
        self._remover = remover

    def process(self, request: EditRequest) -> EditResult:
        mode = parse_mode(request.mode)
        prompt, original, background = self._prepare(mode, request)

        logger.info(
            "Processing %s edit (%s, background=%s)",
            mode.value,
            original.mime_type,
            background.mime_type if background else "none",
        )
        generated = self.generator.generate(prompt, original, background)

        image_data, mime_type, cleaned = generated.data, generated.mime_type, False
        if mode is EditMode.TRANSPARENT and self.transparent_cleanup:
            image_data, mime_type, cleaned = self._cleanup_transparent(generated)

        filename = request.image.filename if request.image else None
        return EditResult(
            mode=mode,
            image_data=image_data,
            mime_type=mime_type,
            download_name=download_filename(filename, mime_type),
            text=generated.text,
            cleaned=cleaned,
        )

    def _prepare(self, mode: EditMode, request: EditRequest) -> tuple[str, InlineImage, InlineImage | None]:
        if request.image is None or not request.image.data:
            raise InvalidEditRequestError(MISSING_IMAGE_MESSAGE)

        prompt = build_prompt(mode, request.prompt)

        background: InlineImage | None = None
        if mode is EditMode.CUSTOM_BACKGROUND:
            if request.background is None or not request.background.data:
                raise InvalidEditRequestError(MISSING_BACKGROUND_MESSAGE)
            background = file_to_inline_part(request.background.data, request.background.content_type)

        original = file_to_inline_part(request.image.data, request.image.content_type)
        return prompt, original, background

    # ---------------------------------------------------------------------
    # Transparent output cleanup
    # ---------------------------------------------------------------------

    def _cleanup_transparent(self, generated: GeneratedImage) -> tuple[bytes, str, bool]:
        try:
            if has_transparency(generated.data):
                return generated.data, generated.mime_type, False
            cleaned = self._remove_background(generated.data)
        except (BackgroundRemovalError, UnidentifiedImageError, OSError) as exc:
            logger.warning("Transparent cleanup skipped: %s", exc)
            return generated.data, generated.mime_type, False
        return image_to_png_bytes(cleaned), "image/png", True

    def warm_up(self) -> None:
        """Load the rembg model ahead of the first transparent edit."""
        if self.transparent_cleanup:
            self._get_remover()

    def _get_remover(self) -> RemoverFunc:
        if self._remover is None:
            self._remover = self._build_default_remover()
        return self._remover

    def _build_default_remover(self) -> RemoverFunc:
        try:
            from rembg import new_session, remove as rembg_remove
        except ImportError as exc:
            raise BackgroundRemovalError("rembg is not installed") from exc

        logger.info("Initializing rembg session with model %s", self.rembg_model_name)
        try:
            session = new_session(model_name=self.rembg_model_name)
        except Exception as exc:
            raise BackgroundRemovalError(f"Could not load rembg model '{self.rembg_model_name}'") from exc

        def _remove(image_bytes: bytes) -> bytes:
            return rembg_remove(image_bytes, session=session)

        return _remove

    def _remove_background(self, image_bytes: bytes) -> Image.Image:
        remover = self._get_remover()
        try:
            output = remover(image_bytes)
        except Exception as exc:
            raise BackgroundRemovalError("Background removal failed") from exc

        if isinstance(output, Image.Image):
            return ensure_rgba(output).copy()
        if isinstance(output, (bytes, bytearray)):
            with Image.open(io.BytesIO(output)) as img:
                return ensure_rgba(img).copy()

        raise BackgroundRemovalError(
            "Background removal function returned unsupported data type"
        )
