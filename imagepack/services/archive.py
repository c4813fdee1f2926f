# imagepack/services/archive.py
import zipfile
from pathlib import Path
from typing import Dict, List
from imagepack.core.exceptions import BatchStorageError
from imagepack.models.batch import ArchiveBundle, Variant
from imagepack.models.profile import Profile
from imagepack.core.logging import get_logger

logger = get_logger(__name__)


def create_zip_archive(variants: List[Variant], zip_path: Path) -> Path:
    """
    Write variants into a ZIP archive

    Entries sharing a name are collapsed: the last variant's bytes win and
    the entry keeps the position of the first one.

    Args:
        variants: Variants to store, may be empty
        zip_path: Destination of the archive

    Returns:
        Path to ZIP file
    """
    entries: Dict[str, bytes] = {}
    for variant in variants:
        if variant.name in entries:
            logger.warning(f"Duplicate archive entry {variant.name}, keeping last")
        entries[variant.name] = variant.data

    with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED, compresslevel=9) as zipf:
        for name, data in entries.items():
            zipf.writestr(name, data)

    logger.info(f"Zip archive created: {zip_path} ({zip_path.stat().st_size} bytes)")
    return zip_path


def write_archives(buffers: Dict[Profile, List[Variant]], batch_dir: Path) -> Dict[Profile, ArchiveBundle]:
    """
    Build one archive per profile inside a batch directory

    Raises:
        BatchStorageError: If any archive cannot be written
    """
    bundles: Dict[Profile, ArchiveBundle] = {}
    for profile in Profile:
        zip_path = batch_dir / profile.archive_name
        try:
            create_zip_archive(buffers.get(profile, []), zip_path)
        except OSError as e:
            logger.error(f"Failed to create ZIP archive {zip_path}: {e}")
            raise BatchStorageError("Could not write archives for this batch") from e

        bundles[profile] = ArchiveBundle(
            profile=profile,
            storage_path=zip_path,
            filename=profile.archive_name,
        )
    return bundles
