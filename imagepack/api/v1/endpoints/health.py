# imagepack/api/v1/endpoints/health.py
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from imagepack.api.deps import get_batch_storage, get_expiry_worker
from imagepack.core.config import settings
from imagepack.services.expiry import ExpiryWorker
from imagepack.services.storage import BatchStorage

router = APIRouter()


@router.get("/health")
async def health_check(
    storage: BatchStorage = Depends(get_batch_storage),
    expiry: ExpiryWorker = Depends(get_expiry_worker)
):
    """
    Health check endpoint for monitoring

    Reports "degraded" when the batch storage root cannot be written, since
    every conversion would fail in that state.
    """
    writable = storage.is_writable()
    return {
        "status": "healthy" if writable else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "storage": {
            "writable": writable,
            "pending_cleanups": expiry.pending(),
            "artifact_ttl_seconds": settings.ARTIFACT_TTL_SECONDS
        }
    }
