# tests/test_storage.py
import logging
import os
import time
import zipfile

import pytest

from imagepack.core.exceptions import BatchStorageError
from imagepack.models.batch import Variant
from imagepack.models.profile import Profile
from imagepack.services.archive import create_zip_archive, write_archives
from imagepack.services.expiry import ExpiryWorker


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_allocate_creates_unique_directories(storage):
    first = storage.allocate()
    second = storage.allocate()
    assert first != second
    assert first.is_dir() and second.is_dir()
    assert first.parent == storage.root


def test_allocate_failure(tmp_path):
    from imagepack.services.storage import BatchStorage

    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(BatchStorageError):
        BatchStorage(blocker).allocate()


def test_contains(storage):
    batch_dir = storage.allocate()
    assert storage.contains(batch_dir / "desktop_images.zip")
    assert not storage.contains(storage.root)
    assert not storage.contains("/etc/passwd")
    assert not storage.contains(f"{batch_dir}/../../../outside.zip")
    assert not storage.contains(str(storage.root) + "-evil/file.zip")


def test_contains_resolves_symlinks(storage, tmp_path):
    outside = tmp_path / "outside.zip"
    outside.write_bytes(b"data")
    batch_dir = storage.allocate()
    link = batch_dir / "link.zip"
    link.symlink_to(outside)
    assert not storage.contains(link)
    with pytest.raises(PermissionError):
        storage.resolve_artifact(link)


def test_sweep_expired(storage):
    old_dir = storage.allocate()
    fresh_dir = storage.allocate()
    stale = time.time() - 7200
    os.utime(old_dir, (stale, stale))

    assert storage.sweep_expired(3600) == 1
    assert not old_dir.exists()
    assert fresh_dir.exists()


def test_write_archives(storage):
    batch_dir = storage.allocate()
    buffers = {
        Profile.DESKTOP: [Variant(Profile.DESKTOP, "a.webp", b"desktop-a")],
        Profile.MOBILE: [],
    }
    bundles = write_archives(buffers, batch_dir)

    assert bundles[Profile.DESKTOP].storage_path == batch_dir / "desktop_images.zip"
    assert bundles[Profile.MOBILE].filename == "mobile_images.zip"
    with zipfile.ZipFile(bundles[Profile.DESKTOP].storage_path) as zf:
        assert zf.read("a.webp") == b"desktop-a"
    with zipfile.ZipFile(bundles[Profile.MOBILE].storage_path) as zf:
        assert zf.namelist() == []


def test_write_archives_failure(storage):
    batch_dir = storage.allocate()
    storage.remove(batch_dir)
    with pytest.raises(BatchStorageError):
        write_archives({}, batch_dir)


def test_duplicate_names_last_write_wins(tmp_path):
    zip_path = tmp_path / "out.zip"
    create_zip_archive(
        [
            Variant(Profile.MOBILE, "same.webp", b"first"),
            Variant(Profile.MOBILE, "other.webp", b"other"),
            Variant(Profile.MOBILE, "same.webp", b"second"),
        ],
        zip_path,
    )
    with zipfile.ZipFile(zip_path) as zf:
        assert zf.namelist() == ["same.webp", "other.webp"]
        assert zf.read("same.webp") == b"second"


def test_expiry_removes_directory(storage, expiry_worker):
    batch_dir = storage.allocate()
    expiry_worker.schedule(batch_dir, 0)
    assert wait_for(lambda: not batch_dir.exists())


def test_expiry_waits_for_deadline(storage, expiry_worker):
    later = storage.allocate()
    soon = storage.allocate()
    expiry_worker.schedule(later, 60)
    expiry_worker.schedule(soon, 0)

    assert wait_for(lambda: not soon.exists())
    assert later.exists()
    assert expiry_worker.pending() == 1


def test_expiry_failure_is_logged(storage, caplog):
    def broken_remove(path):
        raise OSError("disk on fire")

    worker = ExpiryWorker(remove=broken_remove)
    with caplog.at_level(logging.ERROR):
        worker._expire(storage.root / "gone")
    assert "disk on fire" in caplog.text
