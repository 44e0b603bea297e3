"""
Static page router.

The HTML/CSS templates are not part of this package; they are served from
PUBLIC_DIR when present.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from branch.core.config import settings
from branch.errors import NotFoundError

router = APIRouter(include_in_schema=False)

PAGES = {
    "/": "index.html",
    "/index.html": "index.html",
    "/dashboard.html": "dashboard.html",
    "/location.html": "location.html",
    "/tech.html": "tech.html",
    "/tag.html": "tag.html",
    "/styles.css": "styles.css",
}


def _serve(filename: str) -> FileResponse:
    path = settings.public_path / filename
    if not path.is_file():
        raise NotFoundError("Page not found", {"page": filename})
    return FileResponse(path)


def _make_endpoint(filename: str):
    async def endpoint() -> FileResponse:
        return _serve(filename)
    endpoint.__name__ = f"page_{filename.replace('.', '_')}"
    return endpoint


for route_path, page_file in PAGES.items():
    router.add_api_route(route_path, _make_endpoint(page_file), methods=["GET"])
