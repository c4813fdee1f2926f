# imagepack/services/storage.py
import os
import shutil
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from imagepack.core.exceptions import BatchStorageError
from imagepack.core.logging import get_logger

logger = get_logger(__name__)


class BatchStorage:
    """
    Ephemeral storage for batch artifacts

    One directory per batch under a single root. The same root is used to
    allocate batch directories and to decide which paths may be served back.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def generate_batch_id(self) -> str:
        """Generate unique batch ID"""
        return f"{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')}_{uuid.uuid4().hex[:12]}"

    def allocate(self) -> Path:
        """
        Create a fresh directory for a batch

        Returns:
            Absolute path of the new batch directory

        Raises:
            BatchStorageError: If the directory cannot be created
        """
        batch_dir = self.root / self.generate_batch_id()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            batch_dir.mkdir(exist_ok=False)
        except OSError as e:
            logger.error(f"Failed to create batch directory {batch_dir}: {e}")
            raise BatchStorageError("Could not prepare storage for this batch") from e

        logger.info(f"Allocated batch directory: {batch_dir}")
        return batch_dir

    def is_writable(self) -> bool:
        """Whether batch directories can currently be created under the root"""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self.root.is_dir() and os.access(self.root, os.W_OK | os.X_OK)

    def contains(self, path: Union[str, Path]) -> bool:
        """Whether a path resolves to a location inside the storage root"""
        try:
            resolved = Path(path).resolve()
        except (OSError, RuntimeError, ValueError):
            return False
        return resolved != self.root and resolved.is_relative_to(self.root)

    def resolve_artifact(self, path: Union[str, Path]) -> Path:
        """
        Resolve a requested artifact path

        Raises:
            PermissionError: If the path escapes the storage root
        """
        if not self.contains(path):
            raise PermissionError("Path is outside the storage root")
        return Path(path).resolve()

    def remove(self, batch_dir: Path) -> None:
        """Delete a batch directory and everything in it"""
        shutil.rmtree(batch_dir)
        logger.info(f"Cleaned up batch directory: {batch_dir}")

    def sweep_expired(self, max_age_seconds: int) -> int:
        """
        Remove batch directories older than the given age

        Deletion schedules live in memory only, so this catches directories
        left over from a previous process.

        Returns:
            Number of directories removed
        """
        if not self.root.is_dir():
            return 0

        cutoff = time.time() - max_age_seconds
        removed = 0
        for entry in self.root.iterdir():
            try:
                if not entry.is_dir() or entry.stat().st_mtime > cutoff:
                    continue
                self.remove(entry)
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to remove stale batch directory {entry}: {e}")

        if removed:
            logger.info(f"Removed {removed} stale batch directories")
        return removed
