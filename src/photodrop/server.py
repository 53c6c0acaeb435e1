from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from markupsafe import escape

from .config import Settings, get_settings
from .errors import TemplateLoadError, UploadError
from .handler import UploadHandler
from .logging_config import setup_logging
from .routes import pages, upload
from .storage import UploadStore
from .views import Pages

logger = logging.getLogger(__name__)

ERROR_HEADINGS = {
    "/upload-multiple": "Error during multiple upload",
}


async def handle_upload_error(request: Request, exc: UploadError) -> HTMLResponse:
    """Turn a rejected upload into an HTML error page with a link back home."""
    heading = ERROR_HEADINGS.get(request.url.path, "Error during upload")
    headers = {"X-Upload-Error": exc.kind.value}
    context = {"heading": heading, "message": exc.message, "kind": exc.kind.value}
    try:
        return request.app.state.pages.render(
            request, "error.html", context, status_code=exc.status_code, headers=headers
        )
    except TemplateLoadError:
        body = (
            f"<h1>{escape(heading)}</h1>\n<p>{escape(exc.message)}</p>\n"
            '<p><a href="/">Back to home</a></p>'
        )
        return HTMLResponse(body, status_code=exc.status_code, headers=headers)


async def handle_template_error(request: Request, exc: TemplateLoadError) -> HTMLResponse:
    logger.error("Failed to load page %s: %s", request.url.path, exc)
    return HTMLResponse(
        "Server error while loading the page.",
        status_code=500,
        headers={"X-Upload-Error": exc.kind.value},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; the upload directory is created if missing."""
    settings = settings or get_settings()
    store = UploadStore(settings.upload_dir)
    store.ensure_directory()

    app = FastAPI(title="photodrop")
    app.state.settings = settings
    app.state.store = store
    app.state.handler = UploadHandler.from_settings(settings, store)
    app.state.pages = Pages(settings.templates_dir)

    app.add_exception_handler(UploadError, handle_upload_error)
    app.add_exception_handler(TemplateLoadError, handle_template_error)

    # --------- Подключение маршрутов ----------
    app.include_router(pages.router)
    app.include_router(upload.router)

    # --------- Статика ----------
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")
    if settings.static_dir.is_dir():
        # mounted last so it never shadows the routes above
        app.mount("/", StaticFiles(directory=settings.static_dir), name="public")
    else:
        logger.debug("Static directory %s does not exist; not serving it", settings.static_dir)
    return app


def main() -> None:
    """Запустить сервер с параметрами из переменных окружения."""
    settings = get_settings()
    setup_logging(
        settings.log_level,
        settings.log_file,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )
    logger.info(
        "Starting photodrop on http://%s:%s (uploads in %s)",
        settings.host,
        settings.port,
        settings.upload_dir.resolve(),
    )
    if settings.reload:
        uvicorn.run(
            "photodrop.server:create_app",
            factory=True,
            host=settings.host,
            port=settings.port,
            reload=True,
        )
    else:
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
