"""Custom exceptions for the background editing service."""

from __future__ import annotations

from typing import Any, Sequence


class ImageProcessingError(Exception):
    """Base exception for all image processing related errors."""


class UnsupportedImageTypeError(ImageProcessingError):
    """Raised when an uploaded file is not a recognisable image."""


class InvalidEditRequestError(ImageProcessingError):
    """Raised when an edit request is missing something its mode requires."""


class MissingApiKeyError(ImageProcessingError):
    """Raised when no Gemini API key is configured."""

    def __init__(self, message: str = "API_KEY environment variable not set") -> None:
        super().__init__(message)


class GenerationError(ImageProcessingError):
    """Raised when the Gemini API call itself fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GeminiSafetyError(GenerationError):
    """Raised when Gemini blocks the request with a safety finish reason."""

    def __init__(self, message: str, finish_reason: str, safety_ratings: Sequence[Any] | None = None) -> None:
        super().__init__(message)
        self.finish_reason = finish_reason
        self.safety_ratings = list(safety_ratings or [])


class NoImageReturnedError(GenerationError):
    """Raised when the response carries no inline image part."""

    def __init__(
        self,
        message: str = "The API did not return an image. Please try again with a different image or prompt.",
        text: str = "",
    ) -> None:
        super().__init__(message)
        self.text = text


class BackgroundRemovalError(ImageProcessingError):
    """Raised when the local background cleanup with rembg fails."""
