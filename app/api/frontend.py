from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{full_path:path}", include_in_schema=False)
async def serve_frontend(full_path: str, request: Request):
    """Serve a front-end asset, falling back to the index document for every other path"""
    settings = request.app.state.settings
    root = Path(settings.static_dir).resolve()

    if full_path:
        candidate = (root / full_path).resolve()
        # Never serve anything outside the static directory
        if candidate.is_relative_to(root) and candidate.is_file():
            return FileResponse(candidate)

    index = root / settings.index_file
    if not index.is_file():
        logger.warning(f"Front-end index not found: {index}")
        raise HTTPException(status_code=404, detail="Front-end not found")
    return FileResponse(index)
