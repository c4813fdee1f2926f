from functools import lru_cache
from fastapi import Depends
from imagepack.core.config import settings
from imagepack.models.profile import EncodingPolicy, Profile
from imagepack.services.batch_service import BatchService
from imagepack.services.derivative import DerivativePipeline
from imagepack.services.expiry import ExpiryWorker
from imagepack.services.storage import BatchStorage


@lru_cache()
def get_batch_storage() -> BatchStorage:
    """Storage rooted at the configured directory, shared by allocation and retrieval"""
    return BatchStorage(settings.storage_path)


@lru_cache()
def get_expiry_worker() -> ExpiryWorker:
    """Process-wide worker that deletes expired batch directories"""
    return ExpiryWorker(remove=get_batch_storage().remove)


def get_encoding_policy() -> EncodingPolicy:
    return EncodingPolicy(quality=settings.WEBP_QUALITY, method=settings.WEBP_METHOD)


def get_derivative_pipeline(
    policy: EncodingPolicy = Depends(get_encoding_policy)
) -> DerivativePipeline:
    return DerivativePipeline(
        widths={
            Profile.DESKTOP: settings.DESKTOP_WIDTH,
            Profile.MOBILE: settings.MOBILE_WIDTH,
        },
        policy=policy,
        max_file_size=settings.MAX_UPLOAD_SIZE,
    )


def get_batch_service(
    pipeline: DerivativePipeline = Depends(get_derivative_pipeline),
    storage: BatchStorage = Depends(get_batch_storage),
    expiry: ExpiryWorker = Depends(get_expiry_worker),
) -> BatchService:
    """
    Build the batch service for a request

    Args:
        pipeline: Per-file derivative renderer
        storage: Batch artifact storage
        expiry: Worker that deletes batch directories after the TTL

    Returns:
        BatchService wired to the given collaborators
    """
    return BatchService(
        pipeline=pipeline,
        storage=storage,
        expiry=expiry,
        artifact_ttl_seconds=settings.ARTIFACT_TTL_SECONDS,
        max_concurrency=settings.MAX_CONCURRENT_FILES,
        download_path=f"{settings.API_V1_PREFIX}/download",
    )
