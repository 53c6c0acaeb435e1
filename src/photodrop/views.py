from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateNotFound

from .errors import TemplateLoadError

logger = logging.getLogger(__name__)


class Pages:
    """Jinja2 page renderer bound to one templates directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.templates = Jinja2Templates(directory=str(self.directory))

    def render(
        self,
        request: Request,
        name: str,
        context: Optional[Mapping[str, Any]] = None,
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HTMLResponse:
        try:
            return self.templates.TemplateResponse(
                request,
                name,
                dict(context or {}),
                status_code=status_code,
                headers=dict(headers) if headers else None,
            )
        except TemplateNotFound as exc:
            logger.error("Template %s not found in %s", name, self.directory)
            raise TemplateLoadError(name) from exc


__all__ = ["Pages"]
