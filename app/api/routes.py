from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.core.config import Settings, get_settings
from app.dependencies import get_edit_service, get_edit_slots
from app.schemas import EditResponse, ModeInfo, ModesResponse
from image_processing import (
    BackgroundEditService,
    EditMode,
    EditRequest,
    GeminiSafetyError,
    GenerationError,
    ImageProcessingError,
    InvalidEditRequestError,
    MissingApiKeyError,
    UnsupportedImageTypeError,
    UploadedImage,
    describe_modes,
    parse_mode,
)
from image_processing.prompts import DEFAULT_MODE

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api/v1", tags=["edits"])

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."

_GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}


def _validate_upload(upload: UploadFile) -> None:
    content_type = (upload.content_type or "").lower()
    if content_type in _GENERIC_CONTENT_TYPES or content_type.startswith("image/"):
        return
    raise HTTPException(
        status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        detail=f"Unsupported file type for: {upload.filename or 'upload'}",
    )


async def _read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[UploadedImage]:
    if upload is None:
        return None
    try:
        _validate_upload(upload)
        contents = await upload.read()
    finally:
        await upload.close()
    if not contents:
        return None
    if len(contents) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large: {upload.filename or 'upload'} (limit {max_bytes // (1024 * 1024)} MB)",
        )
    return UploadedImage(data=contents, filename=upload.filename, content_type=upload.content_type)


def _status_for(exc: ImageProcessingError) -> int:
    if isinstance(exc, InvalidEditRequestError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UnsupportedImageTypeError):
        return status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    if isinstance(exc, MissingApiKeyError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, GeminiSafetyError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, GenerationError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@api_router.get("/modes", response_model=ModesResponse, name="list_modes")
async def list_modes() -> ModesResponse:
    return ModesResponse(
        default=DEFAULT_MODE.value,
        modes=[ModeInfo(**info) for info in describe_modes()],
    )


@api_router.post("/edits", response_model=EditResponse, name="create_edit")
async def create_edit(
    mode: str = Form(DEFAULT_MODE.value),
    prompt: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    background: Optional[UploadFile] = File(None),
    service: BackgroundEditService = Depends(get_edit_service),
    edit_slots: asyncio.Semaphore = Depends(get_edit_slots),
    settings: Settings = Depends(get_settings),
) -> EditResponse:
    try:
        edit_mode = parse_mode(mode)
    except InvalidEditRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    original = await _read_upload(image, settings.max_upload_bytes)
    background_image: Optional[UploadedImage] = None
    if edit_mode is EditMode.CUSTOM_BACKGROUND:
        background_image = await _read_upload(background, settings.max_upload_bytes)
    elif background is not None:
        await background.close()
    request = EditRequest(mode=edit_mode, image=original, prompt=prompt, background=background_image)

    try:
        async with edit_slots:
            result = await asyncio.to_thread(service.process, request)
    except ImageProcessingError as exc:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.warning("Edit failed (%s): %s", edit_mode.value, exc)
        raise HTTPException(status_code=status_code, detail=str(exc) or UNEXPECTED_ERROR_MESSAGE)
    except Exception:
        logger.exception("Unexpected error while processing %s edit", edit_mode.value)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=UNEXPECTED_ERROR_MESSAGE)

    logger.info("Edit completed: mode=%s mime=%s cleaned=%s", result.mode.value, result.mime_type, result.cleaned)
    return EditResponse(**result.to_dict())
