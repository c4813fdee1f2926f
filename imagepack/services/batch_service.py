# imagepack/services/batch_service.py
import asyncio
import time
from pathlib import Path
from typing import Dict, List
from urllib.parse import urlencode
from imagepack.core.exceptions import BatchStorageError
from imagepack.models.batch import ArchiveBundle, ConvertResponse, UploadItem, Variant
from imagepack.models.profile import Profile
from imagepack.services.archive import write_archives
from imagepack.services.derivative import DerivativePipeline, ItemOutcome
from imagepack.services.expiry import ExpiryWorker
from imagepack.services.storage import BatchStorage
from imagepack.core.logging import get_logger

logger = get_logger(__name__)


class BatchService:
    """Service for batch image conversion"""

    def __init__(
        self,
        pipeline: DerivativePipeline,
        storage: BatchStorage,
        expiry: ExpiryWorker,
        artifact_ttl_seconds: int = 3600,
        max_concurrency: int = 4,
        download_path: str = "/api/v1/download",
    ):
        self.pipeline = pipeline
        self.storage = storage
        self.expiry = expiry
        self.artifact_ttl_seconds = artifact_ttl_seconds
        self.max_concurrency = max_concurrency
        self.download_path = download_path

    def download_url(self, bundle: ArchiveBundle) -> str:
        """Build the retrieval handle for an archive"""
        query = urlencode({"path": str(bundle.storage_path), "filename": bundle.filename})
        return f"{self.download_path}?{query}"

    async def process_items(self, items: List[UploadItem]) -> List[ItemOutcome]:
        """Process uploads concurrently, keeping upload order in the result"""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def semaphore_wrapper(item: UploadItem) -> ItemOutcome:
            async with semaphore:
                return await asyncio.to_thread(self.pipeline.process, item)

        tasks = [semaphore_wrapper(item) for item in items]
        return list(await asyncio.gather(*tasks))

    async def process_batch(self, items: List[UploadItem]) -> ConvertResponse:
        """
        Convert a batch and package the results

        Args:
            items: Uploads to convert, at least one

        Raises:
            BatchStorageError: If the batch directory or an archive cannot be written
        """
        start_time = time.time()
        batch_dir = self.storage.allocate()
        logger.info(f"[Batch-{batch_dir.name}] Starting batch processing: {len(items)} files")

        outcomes = await self.process_items(items)

        buffers: Dict[Profile, List[Variant]] = {profile: [] for profile in Profile}
        for outcome in outcomes:
            for variant in outcome.variants:
                buffers[variant.profile].append(variant)

        try:
            bundles = await asyncio.to_thread(write_archives, buffers, batch_dir)
        except BatchStorageError:
            self._discard(batch_dir)
            raise

        for bundle in bundles.values():
            bundle.download_url = self.download_url(bundle)

        self.expiry.schedule(batch_dir, self.artifact_ttl_seconds)

        successful = sum(1 for o in outcomes if o.success)
        logger.info(
            f"[Batch-{batch_dir.name}] Complete: {successful}/{len(items)} successful "
            f"in {time.time() - start_time:.2f}s"
        )

        return ConvertResponse(
            processed_images=[o.report for o in outcomes],
            desktop_zip_url=bundles[Profile.DESKTOP].download_url,
            mobile_zip_url=bundles[Profile.MOBILE].download_url,
        )

    def _discard(self, batch_dir: Path) -> None:
        try:
            self.storage.remove(batch_dir)
        except OSError as e:
            logger.error(f"Failed to remove batch directory {batch_dir}: {e}")
