"""
Marketplace Backend: Stored File Route
======================================

Serves objects from the storage root (currently only avatars). Avatar URLs
carry a `?t=` version parameter, so responses can be cached for a day.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from marketplace.schemas.common import ErrorResponse
from marketplace.services.file_service import file_service

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Serve a stored file",
    response_class=FileResponse,
    responses={
        200: {"description": "The stored file"},
        400: {"description": "Path escapes the storage root", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve_path(file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
