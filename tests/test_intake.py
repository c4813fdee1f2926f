# tests/test_intake.py
import pytest
from fastapi import HTTPException
from python_multipart.multipart import File

from imagepack.services.intake import read_upload_items

BOUNDARY = "imagepack-boundary"
CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"


def multipart_body(*parts) -> bytes:
    """Build a multipart body from (field, filename or None, data) tuples"""
    chunks = []
    for field, filename, data in parts:
        disposition = f'form-data; name="{field}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        chunks.append(
            f"--{BOUNDARY}\r\nContent-Disposition: {disposition}\r\n"
            f"Content-Type: application/octet-stream\r\n\r\n".encode() + data + b"\r\n"
        )
    chunks.append(f"--{BOUNDARY}--\r\n".encode())
    return b"".join(chunks)


def test_reads_files_in_order():
    body = multipart_body(
        ("files", "a.jpg", b"first"),
        ("files", "b.png", b"second"),
    )
    items = read_upload_items(CONTENT_TYPE, body)
    assert [(i.name, i.data, i.size) for i in items] == [("a.jpg", b"first", 5), ("b.png", b"second", 6)]


def test_part_without_filename_is_kept_as_unknown():
    payload = bytes(range(256)) * 8000
    items = read_upload_items(CONTENT_TYPE, multipart_body(("files", None, payload)))
    assert len(items) == 1
    assert items[0].name == "unknown"
    assert items[0].data == payload


def test_skips_other_fields_and_empty_parts():
    body = multipart_body(
        ("other", "a.jpg", b"ignored"),
        ("note", None, b"text"),
        ("files", "empty.png", b""),
        ("files", None, b""),
    )
    assert read_upload_items(CONTENT_TYPE, body) == []


@pytest.mark.parametrize("content_type", [None, "", "application/x-www-form-urlencoded", "text/plain"])
def test_non_multipart_yields_nothing(content_type):
    assert read_upload_items(content_type, b"files=abc") == []


def test_missing_boundary_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        read_upload_items("multipart/form-data", multipart_body(("files", "a.jpg", b"x")))
    assert exc_info.value.status_code == 400


def test_spooled_parts_are_closed(monkeypatch):
    closed = []
    original_close = File.close

    def tracking_close(self):
        closed.append(self.file_name)
        original_close(self)

    monkeypatch.setattr(File, "close", tracking_close)
    big = b"\x00\x01" * (2 * 1024 * 1024)
    body = multipart_body(("files", "big.jpg", big), ("other", "skip.png", b"data"))

    items = read_upload_items(CONTENT_TYPE, body)

    assert [i.name for i in items] == ["big.jpg"]
    assert items[0].data == big
    assert closed == [b"big.jpg", b"skip.png"]
