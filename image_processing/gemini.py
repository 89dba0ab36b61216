"""Thin wrapper over the Gemini image model.

One request per edit: the original image, an optional background image and a
text instruction go in; the first inline image part of the first candidate
comes out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx
from google import genai
from google.genai import errors, types

from .exceptions import GeminiSafetyError, GenerationError, MissingApiKeyError, NoImageReturnedError
from .utils import InlineImage, normalize_inline_data, to_data_uri

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image-preview"

SAFETY_FINISH_REASONS = {
    "SAFETY",
    "IMAGE_SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "IMAGE_PROHIBITED_CONTENT",
}


@dataclass(slots=True)
class GeneratedImage:
    data: bytes
    mime_type: str
    text: str = ""

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)


def _enum_name(value: Any) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _collect_text(parts: List[Any]) -> str:
    texts = [part.text for part in parts if getattr(part, "text", None) and not getattr(part, "thought", False)]
    return "\n".join(texts)


def extract_image(response: Any) -> Optional[GeneratedImage]:
    """Return the first ``image/*`` inline part of the first candidate, if any."""

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = list(getattr(content, "parts", None) or [])
    for part in parts:
        inline = getattr(part, "inline_data", None)
        mime_type = getattr(inline, "mime_type", None) or ""
        if inline is not None and mime_type.startswith("image/") and getattr(inline, "data", None):
            return GeneratedImage(
                data=normalize_inline_data(inline.data),
                mime_type=mime_type,
                text=_collect_text(parts),
            )
    return None


def summarize_response(response: Any) -> str:
    summaries = []
    for index, candidate in enumerate(getattr(response, "candidates", None) or []):
        reason = _enum_name(getattr(candidate, "finish_reason", None)) or "-"
        content = getattr(candidate, "content", None)
        part_types = []
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "inline_data", None):
                part_types.append(f"inline_data({part.inline_data.mime_type})")
            elif getattr(part, "text", None):
                part_types.append("text")
            else:
                part_types.append(type(part).__name__)
        summaries.append(f"cand{index}: reason={reason}, parts={','.join(part_types) or 'none'}")
    return "; ".join(summaries) if summaries else "no candidates"


def _check_blocked(response: Any) -> None:
    feedback = getattr(response, "prompt_feedback", None)
    block_reason = _enum_name(getattr(feedback, "block_reason", None))
    if block_reason:
        raise GeminiSafetyError(
            f"The request was blocked by safety filters: {block_reason}",
            finish_reason=block_reason,
            safety_ratings=getattr(feedback, "safety_ratings", None),
        )
    for candidate in getattr(response, "candidates", None) or []:
        finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
        if finish_reason in SAFETY_FINISH_REASONS:
            raise GeminiSafetyError(
                f"The image was blocked by safety filters: {finish_reason}",
                finish_reason=finish_reason,
                safety_ratings=getattr(candidate, "safety_ratings", None),
            )


class GeminiImageClient:
    """Send one multimodal ``generate_content`` request and parse the image out."""

    def __init__(self, api_key: str | None, model: str = DEFAULT_MODEL, client: Any | None = None) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise MissingApiKeyError()
        self._client = genai.Client(api_key=self.api_key)
        return self._client

    @staticmethod
    def build_contents(prompt: str, image: InlineImage, background: InlineImage | None = None) -> Any:
        parts = [types.Part.from_bytes(data=image.data, mime_type=image.mime_type)]
        if background is not None:
            parts.append(types.Part.from_bytes(data=background.data, mime_type=background.mime_type))
        parts.append(types.Part(text=prompt))
        return types.Content(role="user", parts=parts)

    def generate(self, prompt: str, image: InlineImage, background: InlineImage | None = None) -> GeneratedImage:
        client = self._get_client()
        contents = self.build_contents(prompt, image, background)
        config = types.GenerateContentConfig(
            response_modalities=[types.Modality.IMAGE, types.Modality.TEXT],
        )

        logger.info("Calling %s with %d image part(s)", self.model, 2 if background is not None else 1)
        try:
            response = client.models.generate_content(model=self.model, contents=contents, config=config)
        except errors.APIError as exc:
            logger.warning("Gemini API error %s: %s", exc.code, exc.message)
            raise GenerationError(exc.message or str(exc), status_code=exc.code) from exc
        except (httpx.HTTPError, ConnectionError, TimeoutError) as exc:
            logger.warning("Gemini request failed: %s", exc)
            raise GenerationError(str(exc) or "Gemini request failed") from exc

        generated = extract_image(response)
        if generated is not None:
            logger.info("Received %s image (%d bytes)", generated.mime_type, len(generated.data))
            return generated

        _check_blocked(response)
        logger.warning("Gemini response without image data: %s", summarize_response(response))
        candidates = getattr(response, "candidates", None) or []
        content = getattr(candidates[0], "content", None) if candidates else None
        raise NoImageReturnedError(text=_collect_text(list(getattr(content, "parts", None) or [])))
