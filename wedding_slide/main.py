from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from fastapi.templating import Jinja2Templates

from .config import (
    LINE_CHANNEL_ACCESS_TOKEN,
    LINE_CHANNEL_SECRET,
    LOG_LEVEL,
    SLIDESHOW_FETCH_TIMEOUT_SECONDS,
    SLIDESHOW_REFRESH_SECONDS,
    TEMPLATES_DIR,
    UPLOAD_DIR_BASE,
)
from .ingest import IngestHandler
from .line_client import LineClient
from .rotation import RotationHandler
from .storage import FileSystemPhotoStore, PhotoStore

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("wedding_slide").setLevel(level)


configure_logging()

app = FastAPI(title="Wedding Photo Slideshow")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@lru_cache
def get_store() -> PhotoStore:
    return FileSystemPhotoStore(UPLOAD_DIR_BASE)


@lru_cache
def get_line_client() -> LineClient:
    return LineClient(LINE_CHANNEL_ACCESS_TOKEN)


def get_ingest_handler(
    store: PhotoStore = Depends(get_store),
    line_client: LineClient = Depends(get_line_client),
) -> IngestHandler:
    return IngestHandler(store, line_client, LINE_CHANNEL_SECRET)


def get_rotation_handler(store: PhotoStore = Depends(get_store)) -> RotationHandler:
    return RotationHandler(store)


@app.get("/")
async def slideshow(request: Request):
    return templates.TemplateResponse(
        request,
        "slideshow.html",
        {
            "image_url": app.url_path_for("photo_slide"),
            "refresh_ms": SLIDESHOW_REFRESH_SECONDS * 1000,
            "timeout_ms": SLIDESHOW_FETCH_TIMEOUT_SECONDS * 1000,
        },
    )


@app.post("/api/linebot")
async def linebot_webhook(
    request: Request,
    x_line_signature: str | None = Header(default=None),
    handler: IngestHandler = Depends(get_ingest_handler),
):
    body = await request.body()
    # The LINE SDK is blocking.
    result = await run_in_threadpool(handler.handle, body, x_line_signature)
    return JSONResponse(result.payload, status_code=result.status_code)


@app.get("/api/linebot")
async def linebot_health():
    return {"status": "ok", "message": "LINE Bot webhook is active."}


@app.get("/api/photo_slide", name="photo_slide")
def photo_slide(handler: RotationHandler = Depends(get_rotation_handler)):
    result = handler.poll()
    if result.content is None:
        return JSONResponse(result.payload, status_code=result.status_code)
    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )
