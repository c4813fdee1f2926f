# imagepack/api/v1/endpoints/download.py
import asyncio
from typing import Optional
from urllib.parse import quote
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from imagepack.api.deps import get_batch_storage
from imagepack.services.storage import BatchStorage
from imagepack.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def content_disposition(filename: str) -> str:
    """Attachment header value for a caller supplied filename"""
    cleaned = "".join(c for c in filename if c.isprintable() and c not in '"\\')
    quoted = quote(cleaned)
    if quoted != cleaned:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{cleaned}"'


@router.get("/download")
async def download(
    path: Optional[str] = Query(None, description="Absolute storage path of the archive"),
    filename: Optional[str] = Query(None, description="Filename offered to the browser"),
    storage: BatchStorage = Depends(get_batch_storage)
):
    """
    Download an archive produced by a conversion batch

    Only files inside the batch storage root can be served. Handles stop
    working once the batch directory has expired.
    """
    if not path or not filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing file path or file name"
        )

    try:
        archive_path = storage.resolve_artifact(path)
    except PermissionError:
        logger.warning(f"Rejected download outside storage root: {path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Access to this file is not allowed"
        )

    try:
        content = await asyncio.to_thread(archive_path.read_bytes)
    except OSError as e:
        logger.error(f"Error downloading file {archive_path}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not download file"
        )

    return Response(
        content=content,
        media_type="application/zip",
        headers={
            "Content-Disposition": content_disposition(filename),
            "Content-Length": str(len(content)),
        }
    )
