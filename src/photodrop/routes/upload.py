from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..config import Settings
from ..errors import TemplateLoadError
from ..handler import UploadHandler
from ..models import Many, StoredFile
from ..multipart import MultipartStream
from ..views import Pages
from .pages import get_pages

router = APIRouter()


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_handler(request: Request) -> UploadHandler:
    return request.app.state.handler


def open_form(request: Request, settings: Settings) -> MultipartStream:
    """Stream the request body; nothing is read before the handler asks for it."""
    return MultipartStream.from_request(
        request,
        max_field_size=settings.form_max_field_size,
        max_fields=settings.form_max_fields,
    )


def _render_stored(
    request: Request,
    pages: Pages,
    handler: UploadHandler,
    template: str,
    context: Dict[str, Any],
    files: List[StoredFile],
) -> HTMLResponse:
    """Render a success page; stored files are removed if the page cannot be built."""
    try:
        return pages.render(request, template, context)
    except TemplateLoadError:
        handler.store.cleanup(Many(files=files))
        raise


@router.post("/upload", response_class=HTMLResponse)
async def upload_single(
    request: Request,
    settings: Settings = Depends(app_settings),
    handler: UploadHandler = Depends(get_handler),
    pages: Pages = Depends(get_pages),
):
    """Загрузить одно изображение из поля ``file``."""
    form = open_form(request, settings)
    received = await handler.single(form.parts(), field="file")
    stored = received.file
    return _render_stored(
        request, pages, handler, "upload_single.html", {"file": stored}, [stored]
    )


@router.post("/upload-multiple", response_class=HTMLResponse)
async def upload_multiple(
    request: Request,
    settings: Settings = Depends(app_settings),
    handler: UploadHandler = Depends(get_handler),
    pages: Pages = Depends(get_pages),
):
    """Загрузить до трёх изображений из поля ``files``."""
    form = open_form(request, settings)
    received = await handler.multiple(form.parts(), field="files", max_count=3)
    return _render_stored(
        request,
        pages,
        handler,
        "upload_multiple.html",
        {"files": received.files},
        received.files,
    )


@router.post("/upload-with-data", response_class=HTMLResponse)
async def upload_with_data(
    request: Request,
    settings: Settings = Depends(app_settings),
    handler: UploadHandler = Depends(get_handler),
    pages: Pages = Depends(get_pages),
):
    """Главное изображение, галерея и текстовые поля ``title``/``description``."""
    form = open_form(request, settings)
    result = await handler.with_data(form.parts(), form.text_fields)
    fields = result.received.fields
    context = {
        "title": result.title,
        "description": result.description,
        "main_image": fields["image"][0],
        "gallery": fields.get("gallery", []),
    }
    return _render_stored(
        request, pages, handler, "upload_with_data.html", context, result.files
    )
