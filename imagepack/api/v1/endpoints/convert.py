# imagepack/api/v1/endpoints/convert.py
import asyncio
from typing import Union
from fastapi import APIRouter, Depends, Request
from imagepack.api.deps import get_batch_service, get_encoding_policy
from imagepack.core.config import settings
from imagepack.models.batch import ConvertFailureResponse, ConvertResponse
from imagepack.models.profile import EncodingPolicy, Profile, ProfilesInfo
from imagepack.services.batch_service import BatchService
from imagepack.services.intake import read_upload_items
from imagepack.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

NO_FILES_MESSAGE = "No files uploaded."


@router.post("/convert", response_model=Union[ConvertResponse, ConvertFailureResponse])
async def convert(
    request: Request,
    batch_service: BatchService = Depends(get_batch_service)
):
    """
    Upload images and get back desktop and mobile WebP archives

    **Parameters:**
    - `files`: One multipart part per image (repeat the field for a batch)

    **Returns:** A report per uploaded file plus two download URLs. Files that
    cannot be decoded are reported with an `error` and left out of both
    archives; the rest of the batch is still processed.

    Archives are deleted one hour after the batch completes.

    **Example using curl:**
    ```bash
    curl -X POST "http://localhost:8000/api/v1/convert" \\
      -F "files=@photo1.jpg" \\
      -F "files=@photo2.png"
    ```
    """
    body = await request.body()
    items = await asyncio.to_thread(read_upload_items, request.headers.get("content-type"), body)

    if not items:
        logger.info("Convert request without usable files")
        return ConvertFailureResponse(message=NO_FILES_MESSAGE)

    logger.info(f"Converting batch of {len(items)} files")
    return await batch_service.process_batch(items)


@router.get("/profiles", response_model=ProfilesInfo)
async def get_profiles(
    policy: EncodingPolicy = Depends(get_encoding_policy)
):
    """
    Get information about the derivative profiles

    Returns target widths, encoder settings and limits
    """
    return ProfilesInfo(
        widths={
            Profile.DESKTOP: settings.DESKTOP_WIDTH,
            Profile.MOBILE: settings.MOBILE_WIDTH,
        },
        format=policy.format,
        quality=policy.quality,
        method=policy.method,
        lossless=policy.lossless,
        max_file_size_bytes=settings.MAX_UPLOAD_SIZE,
        artifact_ttl_seconds=settings.ARTIFACT_TTL_SECONDS,
    )
