"""
Circles Backend — Stored File Route
=====================================

What:  Serves uploaded profile pictures from the storage root.
Who:   Referenced by photoURL / profilePicture values of uploaded pictures,
       so it stays unauthenticated (browsers load it from <img> tags).
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from app.schemas.common import ErrorResponse
from app.services.file_service import file_service

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Serve an uploaded image",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path outside storage", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)
    # Stored names are UUIDs, so a file never changes once written
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
