from __future__ import annotations

from typing import List

from pydantic import BaseModel


class ModeInfo(BaseModel):
    value: str
    label: str
    description: str
    requires_prompt: bool
    requires_background: bool


class ModesResponse(BaseModel):
    default: str
    modes: List[ModeInfo]


class EditResponse(BaseModel):
    mode: str
    image: str
    mime_type: str
    download_name: str
    text: str = ""
    cleaned: bool = False
