from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Union

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.routes import api_router
from app.core.config import get_settings
from app.dependencies import set_edit_service
from image_processing import BackgroundEditService, GeminiImageClient

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

if settings.static_dir.exists():
    app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")
else:
    logger.warning("Static directory '%s' does not exist.", settings.static_dir)

edit_service = BackgroundEditService(
    GeminiImageClient(api_key=settings.gemini_api_key, model=settings.gemini_model),
    transparent_cleanup=settings.transparent_cleanup,
    rembg_model_name=settings.rembg_model_name,
)
set_edit_service(edit_service, max_concurrent=settings.max_concurrent_edits)


async def _warm_up_remover() -> None:
    """Download the rembg model assets before the first transparent edit."""

    def _load() -> None:
        try:
            edit_service.warm_up()
        except Exception:  # pragma: no cover - best effort warm-up
            logger.exception("Failed to initialize rembg model session.")

    await asyncio.to_thread(_load)


@app.on_event("startup")
async def on_startup() -> None:
    if not settings.gemini_api_key:
        logger.warning("No Gemini API key configured; edits will fail until API_KEY is set.")
    if settings.warm_up_remover:
        await _warm_up_remover()


@app.get("/", include_in_schema=False, response_model=None)
async def read_index() -> Union[FileResponse, JSONResponse]:
    index_file: Path = settings.static_dir / "index.html"
    if index_file.exists():
        return FileResponse(index_file)
    return JSONResponse({"message": "Service is running"})


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(api_router)


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
