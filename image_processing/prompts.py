"""Edit modes and the instructions sent to Gemini for each of them."""

from __future__ import annotations

from enum import Enum

from .exceptions import InvalidEditRequestError


class EditMode(str, Enum):
    TRANSPARENT = "transparent"
    AI_BACKGROUND = "ai_background"
    CUSTOM_BACKGROUND = "custom_background"


DEFAULT_MODE = EditMode.TRANSPARENT

TRANSPARENT_PROMPT = (
    "Isolate the main subject from the image and make the background transparent. "
    "The output should be a PNG image with a transparent background."
)
AI_BACKGROUND_PROMPT = (
    "Replace the background of the image with the following scene: {description}. "
    "Keep the main subject from the original image."
)
CUSTOM_BACKGROUND_PROMPT = (
    "Take the main subject from the first image and place it realistically onto the "
    "background provided in the second image. Blend the subject with the new background, "
    "matching lighting and perspective."
)

MISSING_DESCRIPTION_MESSAGE = "Please enter a description for the new background."

_MODE_INFO = {
    EditMode.TRANSPARENT: {
        "label": "Transparent background",
        "description": "The background is removed, leaving the main subject. No extra settings needed.",
        "requires_prompt": False,
        "requires_background": False,
    },
    EditMode.AI_BACKGROUND: {
        "label": "AI background",
        "description": "Describe a scene and Gemini generates it behind the subject.",
        "requires_prompt": True,
        "requires_background": False,
    },
    EditMode.CUSTOM_BACKGROUND: {
        "label": "Custom background",
        "description": "Upload a second image to use as the new background.",
        "requires_prompt": False,
        "requires_background": True,
    },
}


def parse_mode(value: str | EditMode | None) -> EditMode:
    """Resolve a wire value (``ai_background``) or member name (``AI_BACKGROUND``)."""

    if value is None or value == "":
        return DEFAULT_MODE
    if isinstance(value, EditMode):
        return value
    normalized = value.strip().lower()
    for mode in EditMode:
        if normalized in (mode.value, mode.name.lower()):
            return mode
    allowed = ", ".join(mode.value for mode in EditMode)
    raise InvalidEditRequestError(f"Unknown mode '{value}'. Allowed modes: {allowed}")


def build_prompt(mode: EditMode, description: str | None = None) -> str:
    if mode is EditMode.TRANSPARENT:
        return TRANSPARENT_PROMPT
    if mode is EditMode.AI_BACKGROUND:
        if not description or not description.strip():
            raise InvalidEditRequestError(MISSING_DESCRIPTION_MESSAGE)
        return AI_BACKGROUND_PROMPT.format(description=description)
    return CUSTOM_BACKGROUND_PROMPT


def describe_modes() -> list[dict]:
    return [{"value": mode.value, **_MODE_INFO[mode]} for mode in EditMode]
