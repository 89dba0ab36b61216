from __future__ import annotations

import asyncio
from typing import Optional

from image_processing import BackgroundEditService

_edit_service: Optional[BackgroundEditService] = None
_edit_slots: Optional[asyncio.Semaphore] = None


def set_edit_service(service: BackgroundEditService, max_concurrent: int = 1) -> None:
    global _edit_service, _edit_slots
    _edit_service = service
    _edit_slots = asyncio.Semaphore(max(1, max_concurrent))


def get_edit_service() -> BackgroundEditService:
    if _edit_service is None:
        raise RuntimeError("Edit service not initialized")
    return _edit_service


def get_edit_slots() -> asyncio.Semaphore:
    if _edit_slots is None:
        raise RuntimeError("Edit service not initialized")
    return _edit_slots
