"""Public API for the background editing package."""

from .exceptions import (
    BackgroundRemovalError,
    GeminiSafetyError,
    GenerationError,
    ImageProcessingError,
    InvalidEditRequestError,
    MissingApiKeyError,
    NoImageReturnedError,
    UnsupportedImageTypeError,
)
from .gemini import GeminiImageClient, GeneratedImage
from .prompts import EditMode, build_prompt, describe_modes, parse_mode
from .service import BackgroundEditService, EditRequest, EditResult, UploadedImage
from . import utils

__all__ = [
    "BackgroundEditService",
    "BackgroundRemovalError",
    "EditMode",
    "EditRequest",
    "EditResult",
    "GeminiImageClient",
    "GeminiSafetyError",
    "GeneratedImage",
    "GenerationError",
    "ImageProcessingError",
    "InvalidEditRequestError",
    "MissingApiKeyError",
    "NoImageReturnedError",
    "UnsupportedImageTypeError",
    "UploadedImage",
    "build_prompt",
    "describe_modes",
    "parse_mode",
    "utils",
]
