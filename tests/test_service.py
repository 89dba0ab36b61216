from __future__ import annotations

import io
import logging
from typing import List, Optional

import pytest
from PIL import Image

from image_processing import (
    BackgroundEditService,
    EditMode,
    EditRequest,
    GeneratedImage,
    InvalidEditRequestError,
    UnsupportedImageTypeError,
    UploadedImage,
)
from image_processing.prompts import AI_BACKGROUND_PROMPT, CUSTOM_BACKGROUND_PROMPT, TRANSPARENT_PROMPT
from image_processing.utils import InlineImage


def _image_bytes(mode: str = "RGB", color=(255, 0, 0), size=(10, 10), fmt: str = "PNG") -> bytes:
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def transparent_remover(image_bytes: bytes) -> bytes:
    with Image.open(io.BytesIO(image_bytes)) as image:
        image_rgba = image.convert("RGBA")
        transparent = Image.new("RGBA", image_rgba.size, (0, 0, 0, 0))
    buffer = io.BytesIO()
    transparent.save(buffer, format="PNG")
    return buffer.getvalue()


def failing_remover(image_bytes: bytes) -> bytes:
    raise ValueError("simulated failure")


class FakeGenerator:
    def __init__(self, result: Optional[GeneratedImage] = None) -> None:
        self.result = result or GeneratedImage(data=_image_bytes(), mime_type="image/png")
        self.calls: List[tuple[str, InlineImage, Optional[InlineImage]]] = []

    def generate(self, prompt: str, image: InlineImage, background: Optional[InlineImage] = None) -> GeneratedImage:
        self.calls.append((prompt, image, background))
        return self.result


def _upload(data: Optional[bytes] = None, filename: str = "Holiday Photo.JPG", content_type: str = "image/jpeg") -> UploadedImage:
    return UploadedImage(data=data or _image_bytes(fmt="JPEG"), filename=filename, content_type=content_type)


def test_transparent_mode_runs_cleanup_on_opaque_result() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator, remover=transparent_remover)

    result = service.process(EditRequest(mode=EditMode.TRANSPARENT, image=_upload()))

    assert len(generator.calls) == 1
    prompt, image, background = generator.calls[0]
    assert prompt == TRANSPARENT_PROMPT
    assert image.mime_type == "image/jpeg"
    assert background is None

    assert result.cleaned is True
    assert result.mime_type == "image/png"
    assert result.data_uri.startswith("data:image/png;base64,")
    assert result.download_name == "holiday_photo-edited.png"
    with Image.open(io.BytesIO(result.image_data)) as processed:
        assert processed.mode == "RGBA"
        assert processed.size == (10, 10)
        assert processed.getchannel("A").getextrema() == (0, 0)


def test_transparent_result_with_alpha_skips_remover() -> None:
    already_transparent = _image_bytes(mode="RGBA", color=(0, 0, 0, 0))
    generator = FakeGenerator(GeneratedImage(data=already_transparent, mime_type="image/png"))
    service = BackgroundEditService(generator, remover=failing_remover)

    result = service.process(EditRequest(mode=EditMode.TRANSPARENT, image=_upload()))

    assert result.cleaned is False
    assert result.image_data == already_transparent


def test_remover_failure_returns_generated_image() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator, remover=failing_remover)

    result = service.process(EditRequest(mode=EditMode.TRANSPARENT, image=_upload()))

    assert result.cleaned is False
    assert result.image_data == generator.result.data


def test_cleanup_disabled_keeps_generated_image() -> None:
    generator = FakeGenerator(GeneratedImage(data=_image_bytes(fmt="JPEG"), mime_type="image/jpeg", text="done"))
    service = BackgroundEditService(generator, remover=failing_remover, transparent_cleanup=False)

    result = service.process(EditRequest(mode=EditMode.TRANSPARENT, image=_upload()))

    assert result.cleaned is False
    assert result.mime_type == "image/jpeg"
    assert result.text == "done"
    assert result.download_name.endswith(".jpg")


def test_ai_background_interpolates_description_and_ignores_background() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator, remover=failing_remover)

    service.process(
        EditRequest(
            mode=EditMode.AI_BACKGROUND,
            image=_upload(),
            prompt="a futuristic city at night",
            background=_upload(filename="bg.png", content_type="image/png"),
        )
    )

    prompt, _, background = generator.calls[0]
    assert prompt == AI_BACKGROUND_PROMPT.format(description="a futuristic city at night")
    assert background is None


@pytest.mark.parametrize("description", [None, "", "   \n"])
def test_ai_background_requires_description(description: Optional[str]) -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator)

    with pytest.raises(InvalidEditRequestError, match="description for the new background"):
        service.process(EditRequest(mode=EditMode.AI_BACKGROUND, image=_upload(), prompt=description))

    assert generator.calls == []


def test_custom_background_sends_both_images_in_order() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator)
    background_bytes = _image_bytes(color=(0, 0, 255))

    result = service.process(
        EditRequest(
            mode=EditMode.CUSTOM_BACKGROUND,
            image=_upload(),
            background=UploadedImage(data=background_bytes, filename="beach.png", content_type="image/png"),
        )
    )

    prompt, image, background = generator.calls[0]
    assert prompt == CUSTOM_BACKGROUND_PROMPT
    assert image.mime_type == "image/jpeg"
    assert background is not None
    assert background.data == background_bytes
    assert background.mime_type == "image/png"
    assert result.cleaned is False


def test_custom_background_requires_background_image() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator)

    with pytest.raises(InvalidEditRequestError, match="background image"):
        service.process(EditRequest(mode=EditMode.CUSTOM_BACKGROUND, image=_upload()))

    assert generator.calls == []


def test_missing_original_image_is_rejected() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator)

    with pytest.raises(InvalidEditRequestError, match="Please upload the original image."):
        service.process(EditRequest(mode=EditMode.TRANSPARENT, image=None))

    assert generator.calls == []


def test_undeclared_content_type_is_sniffed() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator, transparent_cleanup=False)

    service.process(EditRequest(mode="custom_background", image=_upload(content_type=None), background=_upload(content_type="")))

    _, image, background = generator.calls[0]
    assert image.mime_type == "image/jpeg"
    assert background.mime_type == "image/jpeg"


def test_non_image_upload_is_rejected() -> None:
    generator = FakeGenerator()
    service = BackgroundEditService(generator)

    with pytest.raises(UnsupportedImageTypeError):
        service.process(
            EditRequest(
                mode=EditMode.TRANSPARENT,
                image=UploadedImage(data=b"not an image", filename="notes.txt", content_type="application/octet-stream"),
            )
        )

    assert generator.calls == []


def test_process_logs_mode_before_calling_gemini(caplog: pytest.LogCaptureFixture) -> None:
    service = BackgroundEditService(FakeGenerator(), transparent_cleanup=False)

    with caplog.at_level(logging.INFO, logger="image_processing.service"):
        service.process(EditRequest(mode=EditMode.AI_BACKGROUND, image=_upload(), prompt="a desert"))

    assert "Processing ai_background edit (image/jpeg, background=none)" in caplog.messages
