from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..views import Pages

router = APIRouter()


def get_pages(request: Request) -> Pages:
    return request.app.state.pages


@router.get("/")
async def serve_index(request: Request, pages: Pages = Depends(get_pages)):
    """Отдать форму загрузки."""
    return pages.render(request, "index.html")
